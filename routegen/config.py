"""Generator settings.

Defaults can be overridden from the environment (ROUTEGEN_*) and then from
the command line.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

DEFAULT_OUTPUT_DIR = Path("generated")
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


@dataclass(frozen=True)
class GeneratorConfig:
    output_dir: Path = DEFAULT_OUTPUT_DIR
    # Address the emitted server binds to by default
    server_host: str = DEFAULT_HOST
    server_port: int = DEFAULT_PORT
    # Base URL baked into the emitted client as its default
    client_base_url: str = f"http://{DEFAULT_HOST}:{DEFAULT_PORT}"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "GeneratorConfig":
        env = os.environ if environ is None else environ
        host = env.get("ROUTEGEN_HOST", DEFAULT_HOST)
        port = int(env.get("ROUTEGEN_PORT", DEFAULT_PORT))
        return cls(
            output_dir=Path(env.get("ROUTEGEN_OUTPUT_DIR", DEFAULT_OUTPUT_DIR)),
            server_host=host,
            server_port=port,
            client_base_url=env.get("ROUTEGEN_BASE_URL", f"http://{host}:{port}"),
            log_level=env.get("ROUTEGEN_LOG_LEVEL", "INFO").upper(),
        )
