"""
Error taxonomy for registration, storage and request execution.

Registration errors are fatal: the process must not serve a composite schema
that failed to build. Request-time errors are converted into wire errors by
the dispatcher and never escape a single request.
"""

from typing import Any

PathSegment = str | int


class MosaicError(Exception):
    """Base class for all Mosaic errors."""

    code = "INTERNAL"

    def __init__(self, message: str, path: list[PathSegment] | None = None):
        super().__init__(message)
        self.message = message
        self.path: list[PathSegment] = list(path or [])

    def at(self, path: list[PathSegment]) -> "MosaicError":
        """Return this error relocated to ``path``."""
        self.path = list(path)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "path": list(self.path),
            "extensions": {"code": self.code},
        }


# Registration-time


class RegistrationError(MosaicError):
    code = "REGISTRATION_ERROR"


class DuplicateNameError(RegistrationError):
    code = "DUPLICATE_NAME"

    def __init__(self, name: str, reason: str = "is already declared"):
        super().__init__(f"'{name}' {reason}")
        self.name = name


class DanglingReferenceError(RegistrationError):
    code = "DANGLING_REFERENCE"

    def __init__(self, reference: str, where: str):
        super().__init__(f"Unresolved reference '{reference}' in {where}")
        self.reference = reference
        self.where = where


class MissingResolverError(RegistrationError):
    code = "MISSING_RESOLVER"

    def __init__(self, operation: str):
        super().__init__(f"Operation '{operation}' has no resolver")
        self.operation = operation


class RegistryFrozenError(RegistrationError):
    code = "REGISTRY_FROZEN"

    def __init__(self, namespace: str):
        super().__init__(
            f"Cannot register fragment '{namespace}': the composite schema has been composed"
        )


class SchemaValidationError(RegistrationError):
    code = "SCHEMA_INVALID"


# Storage


class StoreError(MosaicError):
    code = "STORE_ERROR"


class UnknownTypeError(StoreError):
    code = "UNKNOWN_TYPE"

    def __init__(self, name: str):
        super().__init__(f"No declared type or collection named '{name}'")
        self.name = name


class InvalidDocumentError(StoreError):
    code = "INVALID_DOCUMENT"


# Request-time


class UnknownOperation(MosaicError):
    code = "UNKNOWN_OPERATION"

    def __init__(self, operation: str):
        super().__init__(f"Unknown operation '{operation}'")
        self.operation = operation


class PermissionDenied(MosaicError):
    code = "PERMISSION_DENIED"

    def __init__(self, target: str, path: list[PathSegment] | None = None):
        super().__init__(f"Not authorized to access '{target}'", path)
        self.target = target


class InvalidRequest(MosaicError):
    code = "INVALID_REQUEST"


class InvalidArguments(InvalidRequest):
    code = "INVALID_ARGUMENTS"


class ReferenceNotFound(MosaicError):
    code = "REFERENCE_NOT_FOUND"

    def __init__(self, missing: list[tuple[str, str]]):
        described = ", ".join(f"{type_name} '{ref_id}'" for type_name, ref_id in missing)
        super().__init__(f"Referenced entities not found: {described}")
        self.missing = list(missing)


class FieldResolutionError(MosaicError):
    code = "FIELD_RESOLUTION_ERROR"


class WriteLimitExceeded(MosaicError):
    code = "WRITE_LIMIT_EXCEEDED"


class RequestClosedError(MosaicError):
    code = "REQUEST_CLOSED"

    def __init__(self):
        super().__init__("Store access attempted after the request was closed")


class InternalError(MosaicError):
    code = "INTERNAL"
