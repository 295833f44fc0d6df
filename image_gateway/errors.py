"""Error taxonomy for image generation.

Validation and authorization problems are raised as ``CallableError`` and
reach the caller as structured errors. Everything else is a
``GenerationError`` subclass, which the orchestration turns into a soft
failure tagged with its ``ErrorKind``.
"""
import enum


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    PROVIDER_REJECTION = "provider_rejection"
    INTERNAL = "internal"


class CallableError(Exception):
    """Caller-facing error with a stable status code."""

    def __init__(self, status: str, message: str, kind: ErrorKind, http_status: int = 400):
        super().__init__(message)
        self.status = status
        self.message = message
        self.kind = kind
        self.http_status = http_status

    @classmethod
    def invalid_argument(cls, message: str) -> "CallableError":
        return cls("INVALID_ARGUMENT", message, ErrorKind.VALIDATION, http_status=400)

    @classmethod
    def unauthenticated(cls, message: str) -> "CallableError":
        return cls("UNAUTHENTICATED", message, ErrorKind.AUTHORIZATION, http_status=401)

    def to_dict(self) -> dict:
        return {"error": {"status": self.status, "message": self.message}}


class GenerationError(Exception):
    kind = ErrorKind.INTERNAL

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(GenerationError):
    kind = ErrorKind.CONFIGURATION


class TransportError(GenerationError):
    kind = ErrorKind.TRANSPORT


class ProviderRejectionError(GenerationError):
    kind = ErrorKind.PROVIDER_REJECTION


class InternalError(GenerationError):
    kind = ErrorKind.INTERNAL
