"""Plain-text rendering of beads for tool results."""

from ..storage.records import Comment, Record


def format_comments(comments: list[Comment]) -> str:
    if not comments:
        return "No comments."
    lines = []
    for comment in comments:
        stamp = comment.timestamp.strftime("%Y-%m-%d %H:%M") if comment.timestamp else "?"
        author = f" {comment.author}" if comment.author else ""
        lines.append(f"[{stamp}]{author}: {comment.text}")
    return "\n".join(lines)


def format_record(record: Record, with_comments: bool = True) -> str:
    """Render a bead the way ``bd show`` lays it out."""
    lines = [
        f"{record.id}: {record.title}",
        f"Status: {record.status}",
        f"Labels: {', '.join(sorted(record.labels)) or '(none)'}",
    ]
    if record.parent:
        lines.append(f"Parent: {record.parent}")
    if record.priority is not None:
        lines.append(f"Priority: {record.priority}")
    if record.description:
        lines.extend(["", record.description])
    if with_comments and record.comments:
        lines.extend(["", "Comments:", format_comments(record.comments)])
    return "\n".join(lines)


def format_record_list(records: list[Record], empty: str = "No beads found.") -> str:
    """One line per bead: id, title and labels."""
    if not records:
        return empty
    return "\n".join(
        f"{r.id}  {r.title}  [{', '.join(sorted(r.labels))}]" for r in records
    )
