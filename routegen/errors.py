"""Generation-time errors.

Every failure in the pipeline is raised as a CodegenError subclass carrying
the offending reference, path or identifier verbatim. Nothing is retried:
the input is malformed and the run stops.
"""

from __future__ import annotations


class CodegenError(Exception):
    """Base class for all generation failures."""

    template = "{}"

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(self.template.format(value))


class BadReference(CodegenError):
    template = 'Bad reference: "{}"'


class UnexpectedReference(CodegenError):
    template = 'Unexpected reference: "{}"'


class UnsupportedKind(CodegenError):
    template = "Schema not supported: {}"


class EmptyStruct(CodegenError):
    template = "Empty struct: {}"


class NotStructurallyTyped(CodegenError):
    template = "Inline object schema must be given a name: {}"


class MalformedPath(CodegenError):
    template = "Path is malformed: {}"


class NoOperationId(CodegenError):
    template = "No operation id given for route {}"


class BadIdentifier(CodegenError):
    template = "{} is not a valid identifier"


class BadTypeName(CodegenError):
    template = "{} is not a valid type name"


class DuplicateName(CodegenError):
    template = "Duplicate name: {}"


class BadStatusCode(CodegenError):
    template = "Unsupported status code: {}"


class UnsupportedContentType(CodegenError):
    template = "Content type must be 'application/json' only: {}"


class AmbiguousSuccess(CodegenError):
    template = "Expected exactly one success status: {}"


class Unsupported(CodegenError):
    template = "Not supported: {}"
