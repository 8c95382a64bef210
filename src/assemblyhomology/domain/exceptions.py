"""Error taxonomy.

``AssemblyHomologyError`` subclasses carry an ``ErrorType`` with a stable numeric
application code. The remaining families (filter, comparator, load, storage and
configuration errors) are raised below the service boundary and mapped to a
response there.
"""
from __future__ import annotations

from enum import Enum


class ErrorType(Enum):
    AUTHENTICATION_FAILED = (10000, "Authentication failed")
    NO_TOKEN = (10010, "No authentication token")
    INCOMPATIBLE_AUTH = (10020, "Incompatible authentication")
    UNAUTHORIZED = (20000, "Unauthorized")
    MISSING_PARAMETER = (30000, "Missing input parameter")
    ILLEGAL_PARAMETER = (30001, "Illegal input parameter")
    INVALID_SKETCH = (30010, "Invalid sketch")
    INCOMPATIBLE_NAMESPACES = (30020, "Incompatible namespaces")
    INCOMPATIBLE_SKETCHES = (30030, "Incompatible sketches")
    NO_SUCH_NAMESPACE = (50000, "No such namespace")
    NO_SUCH_SEQUENCE = (50010, "No such sequence")
    UNSUPPORTED_OP = (70000, "Unsupported operation")

    def __init__(self, error_code: int, error: str) -> None:
        self.error_code = error_code
        self.error = error


class AssemblyHomologyError(Exception):
    """Base class of all errors with an application error code."""

    error_type: ErrorType

    def __init__(self, error_type: ErrorType, message: str | None = None) -> None:
        self.error_type = error_type
        self.message = message
        super().__init__(self._format(error_type, message))

    @staticmethod
    def _format(error_type: ErrorType, message: str | None) -> str:
        prefix = f"{error_type.error_code} {error_type.error}"
        if message is None or not message.strip():
            return prefix
        return f"{prefix}: {message}"


class AuthenticationError(AssemblyHomologyError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorType.AUTHENTICATION_FAILED, message)


class NoTokenProvidedError(AssemblyHomologyError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorType.NO_TOKEN, message)


class IncompatibleAuthenticationError(AssemblyHomologyError):
    """Namespaces in one query use different authentication sources."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorType.INCOMPATIBLE_AUTH, message)


class MissingParameterError(AssemblyHomologyError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorType.MISSING_PARAMETER, message)


class IllegalParameterError(AssemblyHomologyError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorType.ILLEGAL_PARAMETER, message)


class InvalidSketchError(AssemblyHomologyError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorType.INVALID_SKETCH, message)


class IncompatibleNamespacesError(AssemblyHomologyError):
    """Namespaces in one query use different MinHash implementations."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorType.INCOMPATIBLE_NAMESPACES, message)


class IncompatibleSketchesError(AssemblyHomologyError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorType.INCOMPATIBLE_SKETCHES, message)


class NoDataError(AssemblyHomologyError):
    """Requested data does not exist."""


class NoSuchNamespaceError(NoDataError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorType.NO_SUCH_NAMESPACE, message)


class NoSuchSequenceError(NoDataError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorType.NO_SUCH_SEQUENCE, message)


class UnsupportedOperationError(AssemblyHomologyError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorType.UNSUPPORTED_OP, message)


# --- Filters ---

class DistanceFilterError(Exception):
    """A filter could not process a distance, e.g. a malformed sequence ID."""


class DistanceFilterAuthenticationError(DistanceFilterError):
    """The filter's identity backend rejected the caller's token."""


# --- MinHash comparators ---

class MinHashError(Exception):
    """The sketch comparator failed."""


class MinHashInitError(MinHashError):
    """The sketch comparator could not be initialized."""


class NotASketchError(MinHashError):
    """Input is not a sketch the comparator can read."""

    def __init__(self, message: str, comparator_output: str | None = None) -> None:
        super().__init__(message)
        self.comparator_output = comparator_output


class ComparatorStartError(MinHashError):
    """The comparator process could not be started."""


class ComparatorTimeoutError(MinHashError):
    """The comparator process exceeded its timeout."""


class QueryCancelledError(MinHashError):
    """The caller cancelled the comparator invocation."""


# --- Loading ---

class LoadInputParseError(Exception):
    """Load input (namespace descriptor, sequence metadata or IDs) is invalid."""


# --- Storage ---

class StorageError(Exception):
    """Communication with the storage system failed."""


class StorageInitError(StorageError):
    """The storage system could not be initialized."""


# --- Configuration ---

class ConfigurationError(Exception):
    """Configuration, including filter plugin loading, is invalid."""


class FilterFactoryInitializationError(ConfigurationError):
    """A filter factory rejected its configuration."""
