"""Record envelope shared by every resource kind."""

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


EXTERNAL_NAME_ANNOTATION = "crossplane.io/external-name"

# Condition types
TYPE_READY = "Ready"
TYPE_SYNCED = "Synced"

# Condition reasons
REASON_AVAILABLE = "Available"
REASON_UNAVAILABLE = "Unavailable"
REASON_CREATING = "Creating"
REASON_DELETING = "Deleting"
REASON_RECONCILE_SUCCESS = "ReconcileSuccess"
REASON_RECONCILE_ERROR = "ReconcileError"


class SchemaModel(BaseModel):
    """Base for declarative schema models with camelCase wire names."""

    class Config:
        """Pydantic config."""
        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"

    def to_wire(self) -> dict:
        """Dump using wire field names, dropping unset values."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ObjectMeta(SchemaModel):
    """Record metadata."""
    name: str = Field(..., description="Record name")
    namespace: Optional[str] = None
    annotations: Dict[str, str] = Field(default_factory=dict)
    labels: Dict[str, str] = Field(default_factory=dict)


class Condition(SchemaModel):
    """A single status condition."""
    type: str
    status: Literal["True", "False", "Unknown"]
    reason: str
    message: Optional[str] = None
    last_transition_time: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


def available() -> Condition:
    return Condition(type=TYPE_READY, status="True", reason=REASON_AVAILABLE)


def unavailable(message: Optional[str] = None) -> Condition:
    return Condition(type=TYPE_READY, status="False", reason=REASON_UNAVAILABLE, message=message)


def creating() -> Condition:
    return Condition(type=TYPE_READY, status="False", reason=REASON_CREATING)


def deleting() -> Condition:
    return Condition(type=TYPE_READY, status="False", reason=REASON_DELETING)


def reconcile_success() -> Condition:
    return Condition(type=TYPE_SYNCED, status="True", reason=REASON_RECONCILE_SUCCESS)


def reconcile_error(message: str) -> Condition:
    return Condition(type=TYPE_SYNCED, status="False", reason=REASON_RECONCILE_ERROR, message=message)


class ResourceStatus(SchemaModel):
    """Status block common to all records."""
    conditions: List[Condition] = Field(default_factory=list)

    def set_conditions(self, *conditions: Condition) -> None:
        """Set conditions, replacing any existing condition of the same type.

        The transition time of an existing condition is kept when neither its
        status nor its reason changes.
        """
        for condition in conditions:
            for i, existing in enumerate(self.conditions):
                if existing.type != condition.type:
                    continue
                if existing.status == condition.status and existing.reason == condition.reason:
                    condition.last_transition_time = existing.last_transition_time
                self.conditions[i] = condition
                break
            else:
                self.conditions.append(condition)

    def get_condition(self, condition_type: str) -> Optional[Condition]:
        """Get a condition by type."""
        for condition in self.conditions:
            if condition.type == condition_type:
                return condition
        return None


class ManagedResource(SchemaModel):
    """A declarative record bound to one engine object."""
    api_version: str = Field(default="docker.convoy.io/v1alpha1")
    kind: str
    metadata: ObjectMeta
    ensure: Literal["present", "absent"] = Field(default="present")

    @property
    def key(self) -> str:
        """Stable identifier of the record across runs."""
        return f"{self.kind}/{self.metadata.namespace or 'default'}/{self.metadata.name}"

    def get_external_name(self) -> Optional[str]:
        """Get the engine identity this record is bound to, if any."""
        return self.metadata.annotations.get(EXTERNAL_NAME_ANNOTATION) or None

    def set_external_name(self, value: str) -> None:
        """Bind the record to an engine identity."""
        self.metadata.annotations[EXTERNAL_NAME_ANNOTATION] = value

    def clear_external_name(self) -> None:
        """Unbind the record from its engine identity."""
        self.metadata.annotations.pop(EXTERNAL_NAME_ANNOTATION, None)
