"""
Exception hierarchy for Enact.

All Enact exceptions inherit from EnactError, allowing the engine to convert
any Enact-specific failure into a structured ExecutionResult with a single
except clause.

Exception Categories:
    - CapabilityError: Capability document is malformed
    - InputError / SchemaViolationError: Inputs or outputs failed validation
    - ProviderError: Execution backend could not be acquired or configured
    - TaskError: A task could not be found or run
    - RegistryError: Capability lookup failed
    - ConfigError: Configuration could not be loaded

Error codes are stable strings. They are surfaced verbatim as
``ExecutionResult.error.code`` and are safe for callers to match on.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Capability structure
ERROR_MISSING_FIELD = "MissingField"
ERROR_INVALID_TYPE = "InvalidType"
ERROR_INVALID_CAPABILITY = "InvalidCapability"

# Input / output validation
ERROR_MISSING_REQUIRED_INPUT = "MissingRequiredInput"
ERROR_INVALID_FORMAT = "InvalidFormat"
ERROR_INVALID_ENUM = "InvalidEnum"
ERROR_OUT_OF_RANGE = "OutOfRange"
ERROR_PATTERN_MISMATCH = "PatternMismatch"

# Provider acquisition and configuration
ERROR_UNSUPPORTED_ENVIRONMENT = "UnsupportedEnvironment"
ERROR_MISSING_REQUIRED_ENV_VAR = "MissingRequiredEnvVar"
ERROR_MISSING_CREDENTIAL = "MissingCredential"

# Task execution
ERROR_TASK_NOT_FOUND = "TaskNotFound"
ERROR_UNSUPPORTED_LANGUAGE = "UnsupportedLanguage"
ERROR_MISSING_CODE = "MissingCode"
ERROR_SCRIPT_EXECUTION = "ScriptExecutionError"
ERROR_CONTAINER_EXECUTION = "ContainerExecutionError"
ERROR_REMOTE_EXECUTION = "RemoteExecutionError"

# Lookup, configuration and catch-all
ERROR_NOT_FOUND = "NOT_FOUND"
ERROR_REGISTRY = "RegistryError"
ERROR_CONFIG = "ConfigError"
ERROR_EXECUTION = "EXECUTION_ERROR"


def describe_value(value: Any) -> str:
    """Short descriptor of a value for error messages: type name plus repr."""
    text = repr(value)
    if len(text) > 60:
        text = text[:57] + "..."
    return f"{type(value).__name__} {text}"


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class EnactError(Exception):
    """
    Base exception for all Enact errors.

    Attributes:
        message: Human-readable error description
        code: Stable machine-readable error code
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: str = ERROR_EXECUTION
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Capability Errors
# =============================================================================


@dataclass
class CapabilityError(EnactError):
    """Base class for malformed capability documents."""

    capability_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if self.capability_id:
            self.context["capability_id"] = self.capability_id


@dataclass
class MissingFieldError(CapabilityError):
    """Raised when a required top-level capability field is absent or empty."""

    field_name: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Missing required field: {self.field_name}"
        self.code = ERROR_MISSING_FIELD
        super().__post_init__()
        self.context["field"] = self.field_name


@dataclass
class InvalidCapabilityTypeError(CapabilityError):
    """Raised when the capability type is neither atomic nor composite."""

    capability_type: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Invalid capability type: {self.capability_type}. "
                "Must be 'atomic' or 'composite'"
            )
        self.code = ERROR_INVALID_TYPE
        super().__post_init__()
        self.context["type"] = self.capability_type


@dataclass
class CapabilityParseError(CapabilityError):
    """Raised when a capability document cannot be parsed into the model."""

    validation_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid capability document: {self.validation_error}"
        self.code = ERROR_INVALID_CAPABILITY
        super().__post_init__()
        self.context["validation_error"] = self.validation_error


# =============================================================================
# Input / Output Validation Errors
# =============================================================================


@dataclass
class MissingRequiredInputError(EnactError):
    """Raised when a required input is not supplied."""

    input_name: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Missing required input: {self.input_name}"
        self.code = ERROR_MISSING_REQUIRED_INPUT
        self.context["input"] = self.input_name


@dataclass
class SchemaViolationError(EnactError):
    """
    Base class for a value that does not satisfy its schema.

    Attributes:
        field_label: Label of the validated field (e.g. "name", "output.price")
        expected: The constraint the value failed
        actual: Descriptor of the offending value
    """

    field_label: str = ""
    expected: str = ""
    actual: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context.update({
            "field": self.field_label,
            "expected": self.expected,
            "actual": self.actual,
        })


@dataclass
class InvalidTypeError(SchemaViolationError):
    """Raised when a value has the wrong primitive type."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Invalid type for {self.field_label}: expected {self.expected}, got {self.actual}"
            )
        self.code = ERROR_INVALID_TYPE
        super().__post_init__()


@dataclass
class InvalidFormatError(SchemaViolationError):
    """Raised when a string does not match its named format."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Invalid format for {self.field_label}: expected {self.expected}, got {self.actual}"
            )
        self.code = ERROR_INVALID_FORMAT
        super().__post_init__()


@dataclass
class InvalidEnumError(SchemaViolationError):
    """Raised when a value is not one of the enumerated values."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Invalid value for {self.field_label}: must be one of {self.expected}, got {self.actual}"
            )
        self.code = ERROR_INVALID_ENUM
        super().__post_init__()


@dataclass
class OutOfRangeError(SchemaViolationError):
    """Raised when a number falls outside its inclusive bounds."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Value for {self.field_label} must be {self.expected}, got {self.actual}"
        self.code = ERROR_OUT_OF_RANGE
        super().__post_init__()


@dataclass
class PatternMismatchError(SchemaViolationError):
    """Raised when a string does not match its pattern."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Value for {self.field_label} must match pattern {self.expected}, got {self.actual}"
            )
        self.code = ERROR_PATTERN_MISMATCH
        super().__post_init__()


# =============================================================================
# Provider Errors
# =============================================================================


@dataclass
class ProviderError(EnactError):
    """
    Base class for execution backend errors.

    Attributes:
        provider: Name of the execution backend
    """

    provider: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["provider"] = self.provider


@dataclass
class UnsupportedEnvironmentError(ProviderError):
    """Raised when no backend is registered under the requested name."""

    available: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unsupported execution environment: {self.provider}"
        self.code = ERROR_UNSUPPORTED_ENVIRONMENT
        if not self.suggestion and self.available:
            self.suggestion = f"Use one of: {', '.join(self.available)}"
        super().__post_init__()
        self.context["available"] = self.available


@dataclass
class MissingRequiredEnvVarError(ProviderError):
    """Raised when a required environment variable cannot be resolved."""

    variable: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            suffix = f" for {self.provider} execution" if self.provider else ""
            self.message = f"Missing required environment variable{suffix}: {self.variable}"
        self.code = ERROR_MISSING_REQUIRED_ENV_VAR
        if not self.suggestion:
            self.suggestion = f"Export {self.variable} or declare a schema default"
        super().__post_init__()
        self.context["variable"] = self.variable


@dataclass
class MissingCredentialError(ProviderError):
    """Raised when a backend is constructed without its access credential."""

    credential: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"{self.provider} credential is required: {self.credential}"
        self.code = ERROR_MISSING_CREDENTIAL
        super().__post_init__()
        self.context["credential"] = self.credential


# =============================================================================
# Task Errors
# =============================================================================


@dataclass
class TaskError(EnactError):
    """
    Base class for task lookup and execution errors.

    Attributes:
        task_id: Identifier of the task involved
    """

    task_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["task_id"] = self.task_id


@dataclass
class TaskNotFoundError(TaskError):
    """Raised when a flow step names a task absent from the task list."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Task not found: {self.task_id}"
        self.code = ERROR_TASK_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Check that every flow step names a declared task id"
        super().__post_init__()


@dataclass
class UnsupportedLanguageError(TaskError):
    """Raised when a backend cannot run the task's language."""

    language: str | None = None
    provider: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Language {self.language} not supported by {self.provider} execution provider"
        self.code = ERROR_UNSUPPORTED_LANGUAGE
        super().__post_init__()
        self.context.update({"language": self.language, "provider": self.provider})


@dataclass
class MissingCodeError(TaskError):
    """Raised when a task has no source code to run."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Task code is required: {self.task_id}"
        self.code = ERROR_MISSING_CODE
        super().__post_init__()


@dataclass
class ScriptExecutionError(TaskError):
    """Raised when an in-process script fails at runtime."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Script execution error: {self.underlying_error}"
        self.code = ERROR_SCRIPT_EXECUTION
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class ContainerExecutionError(TaskError):
    """Raised when the container backend fails to prepare or run a task."""

    container_id: str | None = None
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Container execution failed: {self.underlying_error}"
        self.code = ERROR_CONTAINER_EXECUTION
        super().__post_init__()
        self.context.update({
            "container_id": self.container_id,
            "underlying_error": self.underlying_error,
        })


@dataclass
class RemoteExecutionError(TaskError):
    """Raised when the remote workflow API rejects or fails a job."""

    status_code: int | None = None
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Remote execution failed: {self.underlying_error}"
        self.code = ERROR_REMOTE_EXECUTION
        super().__post_init__()
        self.context.update({
            "status_code": self.status_code,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Registry and Config Errors
# =============================================================================


@dataclass
class CapabilityNotFoundError(EnactError):
    """Raised when a capability id has no match in the registry."""

    capability_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Capability not found: {self.capability_id}"
        self.code = ERROR_NOT_FOUND
        self.context["capability_id"] = self.capability_id


@dataclass
class RegistryError(EnactError):
    """Raised when the capability registry cannot be queried."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Capability registry error: {self.underlying_error}"
        self.code = ERROR_REGISTRY
        self.context["underlying_error"] = self.underlying_error


@dataclass
class ConfigError(EnactError):
    """Raised when configuration cannot be loaded or parsed."""

    path: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to load configuration from {self.path}"
        self.code = ERROR_CONFIG
        self.context["path"] = self.path
