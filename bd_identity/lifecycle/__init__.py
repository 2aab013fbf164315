"""Task and topic state machines."""

from .closure import write_closure_note
from .tasks import TaskCreation, TaskLifecycle, parse_hashtags
from .topics import TopicLifecycle

__all__ = [
    "TaskCreation",
    "TaskLifecycle",
    "TopicLifecycle",
    "parse_hashtags",
    "write_closure_note",
]
