"""
Schema definitions for Enact.

This module defines the Pydantic models used throughout Enact:
- Capability/Task/Flow: What to execute
- Parameter/Schema: How inputs and outputs are described
- EnvironmentDeclaration: Which environment variables a capability needs
- ExecutionEnvironment: Resolved variables handed to a provider
- ExecutionResult: The outcome record returned for every run

Design Decisions:
    - Capability models are frozen; they are never mutated during a run
    - Top-level capability fields default to empty values so a document with
      a missing field still loads and is rejected by the structural
      validator with a precise MissingField error
    - Unknown document keys are ignored, capability documents are written
      by third parties and may carry extensions
"""

from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from enact.errors import CapabilityParseError, EnactError


# =============================================================================
# Schema / Parameter Models
# =============================================================================


class Schema(BaseModel):
    """
    Structural type descriptor for inputs, outputs and environment values.

    Attributes:
        type: Primitive type tag (string, number, integer, boolean, array, object)
        format: Optional named format for strings (email, date-time)
        default: Default value used when the value is absent
        enum: Allowed values
        items: Schema for array items
        properties: Schemas for object properties
        minimum: Inclusive lower bound for numbers
        maximum: Inclusive upper bound for numbers
        pattern: Regex a string must match (searched, not anchored)
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str | None = Field(default=None, description="Primitive type tag")
    format: str | None = Field(default=None, description="Named string format")
    default: Any = Field(default=None, description="Default value")
    enum: list[Any] | None = Field(default=None, description="Allowed values")
    items: "Schema | None" = Field(default=None, description="Schema for array items")
    properties: "dict[str, Schema] | None" = Field(
        default=None,
        description="Schemas for object properties",
    )
    minimum: float | None = Field(default=None, description="Inclusive minimum")
    maximum: float | None = Field(default=None, description="Inclusive maximum")
    pattern: str | None = Field(default=None, description="Regex pattern for strings")
    description: str | None = Field(default=None, description="Human-readable description")

    @property
    def has_default(self) -> bool:
        """Whether the document declared a default (an explicit null counts)."""
        return "default" in self.model_fields_set


class Parameter(BaseModel):
    """
    A declared input or output of a capability.

    Attributes:
        name: Parameter name, unique within its list
        description: Human-readable description
        required: Whether the caller must supply it (inputs only)
        schema_: Schema the value must satisfy (``schema`` in documents)
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str = Field(..., description="Parameter name", min_length=1)
    description: str = Field(default="", description="Human-readable description")
    required: bool = Field(default=False, description="Whether the input is required")
    schema_: Schema | None = Field(
        default=None,
        alias="schema",
        description="Schema the value must satisfy",
    )


class EnvironmentVariable(BaseModel):
    """A named environment variable a capability needs at runtime."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str = Field(..., description="Variable name", min_length=1)
    description: str = Field(default="", description="Human-readable description")
    required: bool = Field(default=False, description="Whether resolution must succeed")
    schema_: Schema | None = Field(
        default=None,
        alias="schema",
        description="Optional schema; its default is used when the variable is unset",
    )


class Resources(BaseModel):
    """Resource hints for the execution backend."""

    model_config = ConfigDict(frozen=True, extra="allow")

    memory: str | None = Field(default=None, description="Memory hint, e.g. '512m'")
    timeout: str | None = Field(default=None, description="Timeout hint, e.g. '30s'")


class EnvironmentDeclaration(BaseModel):
    """Environment requirements of a capability."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    vars: list[EnvironmentVariable] = Field(default_factory=list)
    resources: Resources | None = Field(default=None)


# =============================================================================
# Task / Flow Models
# =============================================================================


class PackageRequirement(BaseModel):
    """A named package with an optional version constraint."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(..., min_length=1)
    version: str | None = Field(default=None)


class Dependencies(BaseModel):
    """Runtime version and packages a task depends on."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    version: str | None = Field(default=None, description="Runtime version")
    packages: list[PackageRequirement] = Field(default_factory=list)


class Task(BaseModel):
    """
    A single unit of code within a capability.

    Attributes:
        id: Task identifier, unique within the capability
        type: Task type tag (e.g. "script")
        language: Source language tag (e.g. "javascript")
        code: Inline source code
        dependencies: Runtime and package requirements
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(..., description="Task identifier", min_length=1)
    type: str = Field(default="script", description="Task type tag")
    language: str | None = Field(default=None, description="Source language tag")
    code: str | None = Field(default=None, description="Inline source code")
    dependencies: Dependencies | None = Field(default=None)


class FlowStep(BaseModel):
    """One step of a flow, naming the task to run."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    task: str = Field(..., description="Identifier of the task to run")


class Flow(BaseModel):
    """Ordered execution sequence of a capability."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    steps: list[FlowStep] = Field(default_factory=list)


class Author(BaseModel):
    """Capability author."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    email: str | None = None
    url: str | None = None


# =============================================================================
# Capability Model
# =============================================================================


class Capability(BaseModel):
    """
    A versioned, schema-described unit of executable work.

    Required fields are checked by ``validate_capability_structure`` at run
    time rather than by the model, so missing fields surface as
    MissingField results.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    enact: str = Field(default="", description="Protocol version tag")
    id: str = Field(default="", description="Capability identifier")
    description: str = Field(default="", description="What the capability does")
    version: str = Field(default="", description="Semantic version")
    type: str = Field(default="", description="atomic or composite")
    authors: list[Author] = Field(default_factory=list)
    inputs: list[Parameter] | None = Field(default=None)
    tasks: list[Task] = Field(default_factory=list)
    flow: Flow | None = Field(default=None)
    outputs: list[Parameter] | None = Field(default=None)
    env: EnvironmentDeclaration | None = Field(default=None)

    def get_task(self, task_id: str) -> Task | None:
        """Return the task with the given id, or None."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    @property
    def env_vars(self) -> list[EnvironmentVariable]:
        """Declared environment variables (empty when none)."""
        if self.env is None:
            return []
        return list(self.env.vars)


# =============================================================================
# Runtime Models
# =============================================================================


class ExecutionEnvironment(BaseModel):
    """
    Environment handed to a provider for each task.

    Attributes:
        variables: Resolved environment variables merged with caller overrides
        resources: Resource hints from the capability
    """

    model_config = ConfigDict(frozen=True)

    variables: dict[str, Any] = Field(default_factory=dict)
    resources: dict[str, Any] | None = Field(default=None)


class ExecutionError(BaseModel):
    """Structured error of a failed run."""

    model_config = ConfigDict(frozen=True)

    message: str
    code: str
    details: Any | None = None


class ExecutionMetadata(BaseModel):
    """Metadata attached to every result."""

    model_config = ConfigDict(frozen=True)

    capability_id: str
    version: str
    executed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    environment: str


class ExecutionResult(BaseModel):
    """
    Outcome of a capability run.

    ``outputs`` is set only on success and ``error`` only on failure;
    ``metadata`` is always present.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    outputs: dict[str, Any] | None = None
    error: ExecutionError | None = None
    metadata: ExecutionMetadata

    @classmethod
    def ok(
        cls,
        outputs: dict[str, Any],
        capability_id: str,
        version: str,
        environment: str,
    ) -> "ExecutionResult":
        """Create a successful result."""
        return cls(
            success=True,
            outputs=outputs,
            metadata=ExecutionMetadata(
                capability_id=capability_id,
                version=version,
                environment=environment,
            ),
        )

    @classmethod
    def fail(
        cls,
        message: str,
        code: str,
        capability_id: str,
        version: str,
        environment: str,
        details: Any | None = None,
    ) -> "ExecutionResult":
        """Create a failed result."""
        return cls(
            success=False,
            error=ExecutionError(message=message, code=code, details=details),
            metadata=ExecutionMetadata(
                capability_id=capability_id,
                version=version,
                environment=environment,
            ),
        )

    @classmethod
    def from_error(
        cls,
        error: EnactError,
        capability_id: str,
        version: str,
        environment: str,
    ) -> "ExecutionResult":
        """Create a failed result from an Enact exception."""
        return cls.fail(
            message=error.message,
            code=error.code,
            capability_id=capability_id,
            version=version,
            environment=environment,
            details=error.context or None,
        )


# =============================================================================
# Loading Helpers
# =============================================================================


def parse_capability(data: Mapping[str, Any] | Capability) -> Capability:
    """
    Build a Capability from a mapping.

    Raises:
        CapabilityParseError: If fields have the wrong shape
    """
    if isinstance(data, Capability):
        return data
    if not isinstance(data, Mapping):
        raise CapabilityParseError(
            validation_error=f"expected a mapping, got {type(data).__name__}",
        )
    try:
        return Capability.model_validate(dict(data))
    except ValidationError as e:
        raise CapabilityParseError(
            capability_id=str(data.get("id") or ""),
            validation_error=str(e),
        ) from e


def load_capability(path: Path | str) -> Capability:
    """
    Load a capability from a YAML or JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        CapabilityParseError: If the document doesn't match the model
    """
    path = Path(path)
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)

    return parse_capability(data)


def load_capability_from_string(content: str) -> Capability:
    """Load a capability from a YAML (or JSON) string."""
    return parse_capability(yaml.safe_load(content))
