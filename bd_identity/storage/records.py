"""Bead record model and label-based record kinds.

The bead store has a single untyped record. Identity, task and topic beads
are told apart purely by the labels they carry, so the kinds below are
predicates over the label set rather than subclasses.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

# Reserved and lifecycle labels
IDENTITY_LABEL = "agent-identity"
SESSION_CONTEXT_LABEL = "session-context"
MAIN_SESSION_LABEL = "main-session"
TASK_LABEL = "task"
TOPIC_LABEL = "topic"
BACKLOG_LABEL = "backlog"
READY_LABEL = "ready"
TRIVIAL_LABEL = "trivial"
IN_PROGRESS_LABEL = "in-progress"

# Labels only the lifecycle may move between
STAGE_LABELS = frozenset({BACKLOG_LABEL, READY_LABEL})

_CLOSED_STATUSES = {"closed", "tombstone"}


class RecordKind(Enum):
    """The closed set of record variants."""

    IDENTITY = "identity"
    TASK = "task"
    TOPIC = "topic"
    GENERIC = "generic"


class TaskStage(Enum):
    """Lifecycle state of a task bead."""

    BACKLOG = "backlog"
    READY = "ready"
    CLOSED = "closed"
    UNSTAGED = "unstaged"


class Comment(BaseModel):
    """A single comment on a bead."""

    text: str = Field(..., description="Comment body")
    author: str | None = Field(default=None, description="Who wrote the comment")
    timestamp: datetime | None = Field(default=None, description="When it was written")

    @classmethod
    def from_bd_json(cls, data: dict[str, Any]) -> Comment:
        """Create from a bd comments JSON entry."""
        return cls(
            text=data.get("text") or data.get("body") or "",
            author=data.get("author"),
            timestamp=data.get("created_at") or data.get("timestamp"),
        )


class Record(BaseModel):
    """A bead as returned by the store."""

    id: str = Field(..., description="Opaque bead id")
    title: str = Field(default="", description="Bead title")
    description: str = Field(default="", description="Bead description (full replace only)")
    labels: frozenset[str] = Field(default_factory=frozenset, description="Label set")
    parent: str | None = Field(default=None, description="Single parent bead id")
    status: Literal["open", "closed"] = Field(default="open")
    priority: int | None = Field(default=None)
    comments: list[Comment] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> str:
        """Collapse bd's richer status values into open/closed."""
        if v is None:
            return "open"
        return "closed" if str(v).lower() in _CLOSED_STATUSES else "open"

    @field_validator("labels", mode="before")
    @classmethod
    def coerce_labels(cls, v: Any) -> Any:
        """bd omits the labels key or sends null when a bead has none."""
        return frozenset() if v is None else v

    @field_validator("description", "title", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return v or ""

    @classmethod
    def from_bd_json(cls, data: dict[str, Any]) -> Record:
        """Create from a bd --json object.

        bd reports the parent either as ``parent`` or ``parent_id``; comments
        may be embedded or absent.
        """
        comments = [Comment.from_bd_json(c) for c in data.get("comments") or []]
        fields: dict[str, Any] = {
            "id": data["id"],
            "title": data.get("title"),
            "description": data.get("description"),
            "labels": data.get("labels"),
            "parent": data.get("parent") or data.get("parent_id") or None,
            "status": data.get("status"),
            "priority": data.get("priority"),
            "comments": comments,
        }
        if data.get("created_at"):
            fields["created_at"] = data["created_at"]
        return cls(**fields)

    def has(self, *labels: str) -> bool:
        """True if the record carries every given label."""
        return all(label in self.labels for label in labels)

    @property
    def is_open(self) -> bool:
        return self.status == "open"

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict for tool results."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "labels": sorted(self.labels),
            "parent": self.parent,
            "status": self.status,
            "priority": self.priority,
            "comments": [
                {
                    "text": c.text,
                    "author": c.author,
                    "timestamp": c.timestamp.isoformat() if c.timestamp else None,
                }
                for c in self.comments
            ],
        }


def is_identity(record: Record) -> bool:
    """Identity beads carry the reserved identity label."""
    return IDENTITY_LABEL in record.labels


def is_task(record: Record) -> bool:
    return TASK_LABEL in record.labels and not is_identity(record)


def is_topic(record: Record) -> bool:
    return TOPIC_LABEL in record.labels and not is_identity(record)


def classify(record: Record) -> RecordKind:
    """Return the kind of a record from its labels.

    Identity wins over everything else: a bead that somehow carries both
    ``agent-identity`` and ``task`` is treated as an identity bead so that
    no task path can touch it.
    """
    if is_identity(record):
        return RecordKind.IDENTITY
    if is_task(record):
        return RecordKind.TASK
    if is_topic(record):
        return RecordKind.TOPIC
    return RecordKind.GENERIC


def task_stage(record: Record) -> TaskStage:
    """Return the lifecycle stage of a task bead."""
    if not record.is_open:
        return TaskStage.CLOSED
    if READY_LABEL in record.labels:
        return TaskStage.READY
    if BACKLOG_LABEL in record.labels:
        return TaskStage.BACKLOG
    return TaskStage.UNSTAGED


def agent_labels(record: Record, roster: frozenset[str]) -> set[str]:
    """Agent-name labels on a record: its labels intersected with the roster."""
    return set(record.labels) & set(roster)
