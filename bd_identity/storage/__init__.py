"""Bead store contract, adapter and record model."""

from .bead_store import BeadStore, CliBeadStore
from .query_builder import LabelQueryBuilder
from .records import Comment, Record, RecordKind, TaskStage, classify, task_stage

__all__ = [
    "BeadStore",
    "CliBeadStore",
    "Comment",
    "LabelQueryBuilder",
    "Record",
    "RecordKind",
    "TaskStage",
    "classify",
    "task_stage",
]
