"""Load an OpenAPI description from disk.

JSON or YAML, chosen by file suffix. The document is handed to the
pipeline as plain dicts; it is assumed to be a well-formed OpenAPI 3
document.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = {".yaml", ".yml"}


def load_spec(path: Path) -> dict[str, Any]:
    """Load the OpenAPI description from disk."""
    text = Path(path).read_text(encoding="utf-8")
    if Path(path).suffix.lower() in _YAML_SUFFIXES:
        spec = yaml.safe_load(text)
    else:
        spec = json.loads(text)
    if not isinstance(spec, dict):
        raise ValueError(f"{path} does not contain an OpenAPI document")
    logger.info("Loaded %s (%s)", path, spec.get("info", {}).get("title", "untitled"))
    return spec


def get_paths(spec: dict[str, Any]) -> dict[str, Any]:
    """Extract paths from the spec."""
    return spec.get("paths") or {}
