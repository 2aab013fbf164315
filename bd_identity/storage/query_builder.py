"""Query builder for bd label expressions."""

import re

# Values that bd accepts unquoted inside a query expression
_SAFE_VALUE = re.compile(r"^[A-Za-z0-9_.:-]+$")


class LabelQueryBuilder:
    """Helper for building bd query expressions.

    bd's query language is a conjunction of ``field=value`` predicates. Only
    the predicates the identity layer needs are supported: ``label=X``,
    ``status=open`` and ``parent=<id>``.

    Example:
        expression = (
            LabelQueryBuilder()
            .label("task")
            .label("ready")
            .open()
            .build()
        )
        # "label=task AND label=ready AND status=open"
    """

    def __init__(self):
        self.conditions: list[str] = []

    def _add(self, field: str, value: str) -> "LabelQueryBuilder":
        if not _SAFE_VALUE.match(value):
            raise ValueError(
                f"Invalid {field} value '{value}': only letters, numbers, '.', ':', '_' "
                "and '-' are allowed in queries"
            )
        self.conditions.append(f"{field}={value}")
        return self

    def label(self, name: str) -> "LabelQueryBuilder":
        """Require a label."""
        return self._add("label", name)

    def open(self) -> "LabelQueryBuilder":
        """Restrict to open beads."""
        return self._add("status", "open")

    def parent(self, bead_id: str) -> "LabelQueryBuilder":
        """Restrict to children of a bead."""
        return self._add("parent", bead_id)

    def has_conditions(self) -> bool:
        """Check if any predicates have been added."""
        return len(self.conditions) > 0

    def build(self) -> str:
        """Get the complete expression.

        Raises:
            ValueError: If no predicates were added (bd rejects empty queries)
        """
        if not self.has_conditions():
            raise ValueError("Query needs at least one predicate")
        return " AND ".join(self.conditions)
