"""Shared fixtures for routegen tests.

The petstore fixture is a small but complete description: component
schemas, parameters, responses and request bodies, a query parameter,
a path parameter, a body-carrying operation and error responses.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from routegen.loader import load_spec
from routegen.references import Components

FIXTURES = Path(__file__).parent / "fixtures"
PETSTORE_PATH = FIXTURES / "petstore.yaml"


# ---------------------------------------------------------------------------
# Descriptions
# ---------------------------------------------------------------------------

@pytest.fixture
def petstore() -> dict[str, Any]:
    """Freshly loaded petstore description (safe to mutate per test)."""
    return load_spec(PETSTORE_PATH)


@pytest.fixture
def petstore_components(petstore) -> Components:
    return Components.from_spec(petstore)


def make_spec(
    paths: dict[str, Any] | None = None,
    schemas: dict[str, Any] | None = None,
    **components: Any,
) -> dict[str, Any]:
    """Build a minimal description from its parts."""
    tables = {"schemas": schemas or {}}
    tables.update(components)
    return {
        "openapi": "3.0.0",
        "info": {"title": "test", "version": "0"},
        "paths": paths or {},
        "components": tables,
    }


def operation(operation_id: str | None = "doThing", **fields: Any) -> dict[str, Any]:
    """Build an operation object with a bare 200 response by default."""
    op: dict[str, Any] = {"responses": {"200": {"description": "ok"}}}
    if operation_id is not None:
        op["operationId"] = operation_id
    op.update(fields)
    return op
