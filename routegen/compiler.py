"""Compilation entry point: description -> IR -> generated sources."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .codegen import Formatter, emit_all
from .config import GeneratorConfig
from .context_builder import check_names
from .ir import TypeMap
from .loader import get_paths
from .references import Components
from .routes import RouteTable, gather_routes, iter_routes
from .schema_parser import gather_types

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Compilation:
    types: TypeMap
    routes: RouteTable

    @property
    def route_count(self) -> int:
        return sum(1 for _ in iter_routes(self.routes))


def compile_spec(spec: Mapping[str, Any]) -> Compilation:
    """Build the TypeMap and RouteTable, failing on the first error."""
    components = Components.from_spec(spec)
    types = gather_types(components)
    routes = gather_routes(get_paths(spec), components)
    check_names(types, routes)
    compilation = Compilation(types, routes)
    logger.info("Compiled %d types, %d routes", len(types), compilation.route_count)
    return compilation


def generate(
    spec: Mapping[str, Any],
    config: GeneratorConfig | None = None,
    formatter: Formatter | None = None,
) -> dict[str, str]:
    """Compile spec and render every artifact. Returns {filename: source}."""
    compilation = compile_spec(spec)
    return emit_all(compilation.types, compilation.routes, config, formatter)
