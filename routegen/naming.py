"""Validated names used throughout the pipeline.

Two disjoint kinds of name exist:
  - Identifier: snake_case, used for fields, parameters and operations.
    Input may be snake_case or mixedCase; it is stored snake_case.
  - TypeName: CamelCase, used for component-level types.

Examples:
  parse_identifier("petId")       -> Identifier("pet_id")
  parse_identifier("get_all_pets") -> Identifier("get_all_pets")
  parse_identifier("PetId")       -> BadIdentifier
  parse_type_name("NewPet")       -> TypeName("NewPet")
  parse_type_name("HTTPError")    -> BadTypeName (normalizes to "HttpError")
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import BadIdentifier, BadTypeName


def split_words(value: str) -> list[str]:
    """Split a name into words on separators and case boundaries."""
    words: list[str] = []
    for chunk in re.split(r"[^A-Za-z0-9]+", value):
        if not chunk:
            continue
        chunk = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1 \2", chunk)
        chunk = re.sub(r"([a-z\d])([A-Z])", r"\1 \2", chunk)
        words.extend(chunk.split())
    return words


def to_snake_case(value: str) -> str:
    return "_".join(w.lower() for w in split_words(value))


def to_mixed_case(value: str) -> str:
    words = split_words(value)
    if not words:
        return ""
    return words[0].lower() + "".join(w.capitalize() for w in words[1:])


def to_camel_case(value: str) -> str:
    return "".join(w.capitalize() for w in split_words(value))


@dataclass(frozen=True, order=True)
class Identifier:
    """A snake_case name. Build with parse_identifier()."""

    value: str

    def __str__(self) -> str:
        return self.value

    @property
    def camel(self) -> str:
        return to_camel_case(self.value)


@dataclass(frozen=True, order=True)
class TypeName:
    """A CamelCase type name. Build with parse_type_name()."""

    value: str

    def __str__(self) -> str:
        return self.value

    @property
    def snake(self) -> str:
        return to_snake_case(self.value)


def parse_identifier(raw: str) -> Identifier:
    """Validate raw as snake_case or mixedCase and store it snake_case."""
    snake = to_snake_case(raw)
    if not snake or (raw != snake and raw != to_mixed_case(raw)):
        raise BadIdentifier(raw)
    return Identifier(snake)


def parse_type_name(raw: str) -> TypeName:
    """Validate raw as CamelCase."""
    if not raw or raw != to_camel_case(raw):
        raise BadTypeName(raw)
    return TypeName(raw)
