"""Entry point: python -m routegen SPEC

Reads an OpenAPI description and writes models.py, interface.py,
dispatch.py, server.py and client.py into the output directory.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

import click

from .codegen import emit_all, write_output
from .compiler import compile_spec
from .config import GeneratorConfig
from .errors import CodegenError
from .loader import load_spec


@click.command()
@click.argument("spec_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", type=click.Path(file_okay=False, path_type=Path), default=None, help="Output directory for the generated package.")
@click.option("--host", default=None, help="Default bind host of the generated server.")
@click.option("--port", type=int, default=None, help="Default bind port of the generated server.")
@click.option("--base-url", default=None, help="Default base URL of the generated client.")
@click.option("--check", is_flag=True, help="Validate the description without writing files.")
@click.option("-v", "--verbose", is_flag=True, help="Log every schema and route.")
def main(
    spec_path: Path,
    output: Path | None,
    host: str | None,
    port: int | None,
    base_url: str | None,
    check: bool,
    verbose: bool,
) -> None:
    """Generate a typed server and client from an OpenAPI description."""
    config = GeneratorConfig.from_env()
    overrides = {
        "output_dir": output,
        "server_host": host,
        "server_port": port,
        "client_base_url": base_url,
    }
    config = dataclasses.replace(config, **{k: v for k, v in overrides.items() if v is not None})

    logging.basicConfig(
        level=logging.DEBUG if verbose else config.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        compilation = compile_spec(load_spec(spec_path))
    except CodegenError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(f"Compiled {spec_path}: {len(compilation.types)} types, {compilation.route_count} routes")
    if check:
        return

    files = emit_all(compilation.types, compilation.routes, config)
    written = write_output(files, config.output_dir)
    click.echo(f"Generated {len(written)} files in {config.output_dir}")


if __name__ == "__main__":
    main()
