"""Custom exceptions for Kiro Notes.

Provides a structured exception hierarchy with error codes and
machine-readable error information. Codes stay inside the process: the
command surface renders every error as a plain string.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_DELETE_FAILED = 4003
    STORAGE_CONNECTION_FAILED = 4004
    STORAGE_LOCK_FAILED = 4008

    # Import/export errors (5xxx)
    IMPORT_FAILED = 5101
    EXPORT_FAILED = 5201

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001


class KiroError(Exception):
    """Base exception for all Kiro Notes errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class NoteNotFoundError(KiroError):
    """Raised when an update or delete targets a note that does not exist."""

    def __init__(self, note_id: int, message: Optional[str] = None):
        super().__init__(
            message or f"Note not found: {note_id}",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"note_id": note_id}
        )
        self.note_id = note_id


def _path_hint(path: str) -> str:
    # Don't expose full paths in error details
    return path.replace("\\", "/").rsplit("/", 1)[-1]


class StorageError(KiroError):
    """Raised for storage-engine and connection errors."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None
    ):
        details: Dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if path:
            details["path_hint"] = _path_hint(path)
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.path = path
        self.original_error = original_error


class StoreLockError(StorageError):
    """Raised when the shared store lock cannot be acquired."""

    def __init__(self, operation: str, timeout: float):
        super().__init__(
            f"Note store is busy; could not acquire lock for {operation}",
            operation=operation,
            code=ErrorCode.STORAGE_LOCK_FAILED,
        )
        self.timeout = timeout
        self.details["timeout"] = timeout


class ImportFailedError(KiroError):
    """Raised when a single file cannot be imported."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details: Dict[str, Any] = {}
        if path:
            details["path_hint"] = _path_hint(path)
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=ErrorCode.IMPORT_FAILED, details=details)
        self.path = path
        self.original_error = original_error


class ExportFailedError(KiroError):
    """Raised when the export directory or an export file cannot be written."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details: Dict[str, Any] = {}
        if path:
            details["path_hint"] = _path_hint(path)
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=ErrorCode.EXPORT_FAILED, details=details)
        self.path = path
        self.original_error = original_error


class ConfigurationError(KiroError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=code, details=details)
        self.config_key = config_key


class ValidationError(KiroError):
    """Raised for invalid arguments."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value
