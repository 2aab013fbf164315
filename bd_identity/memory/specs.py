"""Shared spec documents (PRDs, design docs, implementation plans).

Specs live in <workspace>/specs/<name>.md. Every agent can read them; only
the coordinator writes them, and task beads reference them by name.
"""

import logging
import re
from pathlib import Path

from ..utils.errors import MemoryIOError, SpecNotFoundError, ValidationError

logger = logging.getLogger(__name__)

SPEC_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


def normalize_spec_name(name: str) -> str:
    """Strip whitespace and an optional .md suffix, then validate.

    Raises:
        ValidationError: If the name has characters other than letters,
            numbers, hyphens and underscores
    """
    safe_name = re.sub(r"\.md$", "", name.strip(), flags=re.IGNORECASE)
    if not SPEC_NAME_PATTERN.match(safe_name):
        raise ValidationError(
            f"Invalid spec name '{safe_name}'. Only letters, numbers, hyphens, "
            "and underscores are allowed."
        )
    return safe_name


class SpecStore:
    """Read and write spec documents in the shared specs directory."""

    def __init__(self, specs_dir: Path | str):
        self.specs_dir = Path(specs_dir)

    def path_for(self, name: str) -> Path:
        return self.specs_dir / f"{normalize_spec_name(name)}.md"

    def read(self, name: str) -> str:
        """Read a spec by name.

        Raises:
            SpecNotFoundError: If there is no such spec
        """
        path = self.path_for(name)
        if not path.exists():
            raise SpecNotFoundError(name)
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise MemoryIOError(f"Cannot read spec {path.name}: {e}", cause=e) from e

    def write(self, name: str, text: str) -> Path:
        """Create or replace a spec. Callers must hold the coordinator role."""
        path = self.path_for(name)
        try:
            self.specs_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise MemoryIOError(f"Cannot write spec {path.name}: {e}", cause=e) from e
        logger.info(f"Spec written: specs/{path.name}")
        return path

    def list(self) -> list[str]:
        """Names of all specs, sorted."""
        if not self.specs_dir.exists():
            return []
        return sorted(p.stem for p in self.specs_dir.glob("*.md"))
