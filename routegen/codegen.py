"""Render templates and write generated output.

Each emit_* function is a pure function from the IR to one artifact's
source text; write_output() is the only place files are written.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

import jinja2

from .config import GeneratorConfig
from .context_builder import build_context
from .ir import TypeMap
from .routes import RouteTable

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

Formatter = Callable[[str], str]

# Artifact file name -> template name
ARTIFACTS: dict[str, str] = {
    "models.py": "models.py.j2",
    "interface.py": "interface.py.j2",
    "dispatch.py": "dispatch.py.j2",
    "server.py": "server.py.j2",
    "client.py": "client.py.j2",
}

_PACKAGE_INIT = '"""Generated by routegen. Do not edit."""\n'

_env: jinja2.Environment | None = None


def _environment() -> jinja2.Environment:
    global _env
    if _env is None:
        _env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=jinja2.StrictUndefined,
        )
    return _env


def _render(template: str, context: dict[str, Any], formatter: Formatter | None) -> str:
    output = _environment().get_template(template).render(**context)
    return formatter(output) if formatter else output


def _context(types: TypeMap, routes: RouteTable, config: GeneratorConfig | None) -> dict[str, Any]:
    config = config or GeneratorConfig()
    return build_context(
        types,
        routes,
        server_host=config.server_host,
        server_port=config.server_port,
        client_base_url=config.client_base_url,
    )


def emit_types(types: TypeMap, routes: RouteTable, formatter: Formatter | None = None) -> str:
    return _render("models.py.j2", _context(types, routes, None), formatter)


def emit_interface(types: TypeMap, routes: RouteTable, formatter: Formatter | None = None) -> str:
    return _render("interface.py.j2", _context(types, routes, None), formatter)


def emit_dispatcher(types: TypeMap, routes: RouteTable, formatter: Formatter | None = None) -> str:
    return _render("dispatch.py.j2", _context(types, routes, None), formatter)


def emit_server(
    types: TypeMap,
    routes: RouteTable,
    config: GeneratorConfig | None = None,
    formatter: Formatter | None = None,
) -> str:
    return _render("server.py.j2", _context(types, routes, config), formatter)


def emit_client(
    types: TypeMap,
    routes: RouteTable,
    config: GeneratorConfig | None = None,
    formatter: Formatter | None = None,
) -> str:
    return _render("client.py.j2", _context(types, routes, config), formatter)


def emit_all(
    types: TypeMap,
    routes: RouteTable,
    config: GeneratorConfig | None = None,
    formatter: Formatter | None = None,
) -> dict[str, str]:
    """Render every artifact. Returns {filename: source}."""
    context = _context(types, routes, config)
    return {
        filename: _render(template, context, formatter)
        for filename, template in ARTIFACTS.items()
    }


def write_output(files: dict[str, str], output_dir: Path) -> list[Path]:
    """Write the artifacts as a Python package in output_dir."""
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for filename, source in {"__init__.py": _PACKAGE_INIT, **files}.items():
        path = output_dir / filename
        path.write_text(source, encoding="utf-8")
        logger.info("Generated %s", path)
        written.append(path)
    return written
