"""Per-agent workspace memory files.

Layout under the workspace root::

    MEMORY.md                         shared long-term memory (coordinator writes)
    memory/<agentId>/SOUL.md          agent personality
    memory/<agentId>/MEMORY.md        agent long-term memory
    memory/<agentId>/<YYYY>/<date>.md daily log, appended to during the day

Each agent only ever touches its own directory, so ordinary writes never
race with other agents.
"""

import logging
import re
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..utils.errors import MemoryIOError, ValidationError

logger = logging.getLogger(__name__)

# Validation constants
MAX_AGENT_ID_LENGTH = 100
AGENT_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

SOUL_FILE = "SOUL.md"
LTM_FILE = "MEMORY.md"


class InvalidAgentIdError(ValidationError):
    """Raised when an agent id cannot be used as a directory name."""

    pass


def validate_agent_id(agent_id: str) -> str:
    """Validate an agent id before using it as a directory name.

    Args:
        agent_id: The agent id to validate

    Returns:
        The validated agent id (unchanged if valid)

    Raises:
        InvalidAgentIdError: If the agent id is invalid
    """
    if not agent_id:
        raise InvalidAgentIdError("agent id cannot be empty")

    if "\x00" in agent_id:
        raise InvalidAgentIdError("agent id cannot contain null bytes")

    if ".." in agent_id or "/" in agent_id or "\\" in agent_id:
        raise InvalidAgentIdError("agent id cannot contain path traversal characters (../, /, \\)")

    if len(agent_id) > MAX_AGENT_ID_LENGTH:
        raise InvalidAgentIdError(f"agent id cannot exceed {MAX_AGENT_ID_LENGTH} characters")

    if not AGENT_ID_PATTERN.match(agent_id):
        raise InvalidAgentIdError(
            "agent id must contain only alphanumeric characters, underscores, and hyphens"
        )

    return agent_id


def validate_date(date_str: str) -> str:
    """Validate a YYYY-MM-DD date string.

    Raises:
        ValidationError: If the string is not a real calendar date in that format
    """
    date_str = date_str.strip()
    if not DATE_PATTERN.match(date_str):
        raise ValidationError(f'Invalid date format: "{date_str}". Use YYYY-MM-DD.')
    try:
        datetime.strptime(date_str, "%Y-%m-%d")
    except ValueError:
        raise ValidationError(f'Invalid date: "{date_str}". Use YYYY-MM-DD.') from None
    return date_str


class WorkspaceMemory:
    """File-based memory for agents in a shared workspace.

    Example:
        memory = WorkspaceMemory(workspace_dir=Path("~/.openclaw/workspace").expanduser())
        path = memory.append_daily("coder", "Finished the parser refactor")
        print(memory.load("coder"))
    """

    def __init__(
        self,
        workspace_dir: Path | str,
        timezone: str = "America/Chicago",
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize workspace memory.

        Args:
            workspace_dir: Workspace root (memory lives under <root>/memory)
            timezone: IANA timezone used to date daily files
            clock: Returns the current aware datetime (tests inject a fixed one)
        """
        self.workspace_dir = Path(workspace_dir)
        self.memory_root = self.workspace_dir / "memory"
        try:
            self.tz = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone '{timezone}', falling back to UTC")
            self.tz = ZoneInfo("UTC")
        self._clock = clock or (lambda: datetime.now(self.tz))

    # ------------------------------------------------------------------
    # Dates and paths
    # ------------------------------------------------------------------

    def now(self) -> datetime:
        return self._clock().astimezone(self.tz)

    def date_str(self, offset_days: int = 0) -> str:
        """Date in the configured timezone as YYYY-MM-DD."""
        return (self.now() + timedelta(days=offset_days)).strftime("%Y-%m-%d")

    def today(self) -> str:
        return self.date_str(0)

    def yesterday(self) -> str:
        return self.date_str(-1)

    def agent_dir(self, agent_id: str) -> Path:
        """Get (and create) the memory directory for an agent."""
        directory = self.memory_root / validate_agent_id(agent_id)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise MemoryIOError(f"Cannot create {directory}: {e}", cause=e) from e
        return directory

    def daily_path(self, agent_id: str, date_str: str) -> Path:
        """Path of an agent's daily file: <agent>/<year>/<date>.md."""
        date_str = validate_date(date_str)
        return self.agent_dir(agent_id) / date_str[:4] / f"{date_str}.md"

    def relative(self, path: Path) -> str:
        """Path relative to the workspace root, for messages."""
        try:
            return str(path.relative_to(self.workspace_dir))
        except ValueError:
            return str(path)

    # ------------------------------------------------------------------
    # Raw file access
    # ------------------------------------------------------------------

    @staticmethod
    def _read(path: Path) -> str | None:
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise MemoryIOError(f"Cannot read {path}: {e}", cause=e) from e

    @staticmethod
    def _write(path: Path, text: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise MemoryIOError(f"Cannot write {path}: {e}", cause=e) from e
        logger.debug(f"Wrote {len(text)} chars to {path}")

    # ------------------------------------------------------------------
    # Daily files
    # ------------------------------------------------------------------

    def read_daily(self, agent_id: str, date_str: str) -> str:
        """Read a daily file, or "" if there is none for that date."""
        return self._read(self.daily_path(agent_id, date_str)) or ""

    def append_daily(self, agent_id: str, text: str) -> Path:
        """Append text to today's daily file, creating it with a header.

        Returns:
            Path of the daily file
        """
        now = self.now()
        date_str = now.strftime("%Y-%m-%d")
        path = self.daily_path(agent_id, date_str)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if not path.exists():
                path.write_text(f"# {date_str} ({now.strftime('%A')})\n\n{text}\n", encoding="utf-8")
            else:
                with open(path, "a", encoding="utf-8") as f:
                    f.write(f"\n{text}\n")
        except OSError as e:
            raise MemoryIOError(f"Cannot append to {path}: {e}", cause=e) from e
        logger.info(f"Appended {len(text)} chars to {self.relative(path)}")
        return path

    # ------------------------------------------------------------------
    # Personality and long-term memory
    # ------------------------------------------------------------------

    def soul_path(self, agent_id: str) -> Path:
        return self.agent_dir(agent_id) / SOUL_FILE

    def ltm_path(self, agent_id: str) -> Path:
        return self.agent_dir(agent_id) / LTM_FILE

    @property
    def shared_path(self) -> Path:
        return self.workspace_dir / LTM_FILE

    def read_soul(self, agent_id: str) -> str | None:
        return self._read(self.soul_path(agent_id))

    def write_soul(self, agent_id: str, text: str) -> Path:
        path = self.soul_path(agent_id)
        self._write(path, text)
        return path

    def read_ltm(self, agent_id: str) -> str | None:
        return self._read(self.ltm_path(agent_id))

    def write_ltm(self, agent_id: str, text: str) -> Path:
        path = self.ltm_path(agent_id)
        self._write(path, text)
        return path

    def read_shared(self) -> str | None:
        return self._read(self.shared_path)

    def write_shared(self, text: str) -> Path:
        """Replace the shared MEMORY.md. Callers must hold the coordinator role."""
        self._write(self.shared_path, text)
        return self.shared_path

    # ------------------------------------------------------------------
    # Layered load
    # ------------------------------------------------------------------

    def load(self, agent_id: str) -> str:
        """Compose the agent's memory in reading order.

        Shared MEMORY.md, then SOUL.md, agent MEMORY.md, yesterday's and
        today's daily files. Missing files are marked rather than skipped,
        except yesterday's, which is simply omitted.
        """
        parts: list[str] = []

        shared = self.read_shared()
        if shared is not None:
            parts.append(f"=== MEMORY.md (shared long-term) ===\n{shared}")
        else:
            parts.append("=== MEMORY.md (shared) === (not found)")

        soul = self.read_soul(agent_id)
        if soul is not None:
            parts.append(f"=== SOUL.md ({agent_id} personality) ===\n{soul}")
        else:
            parts.append(f"=== SOUL.md ({agent_id}) === (not found)")

        ltm = self.read_ltm(agent_id)
        if ltm is not None:
            parts.append(f"=== MEMORY.md ({agent_id} long-term) ===\n{ltm}")
        else:
            parts.append(f"=== MEMORY.md ({agent_id}) === (not found)")

        yesterday = self.yesterday()
        yesterday_content = self.read_daily(agent_id, yesterday)
        if yesterday_content:
            parts.append(f"=== {yesterday} (yesterday) ===\n{yesterday_content}")

        today = self.today()
        today_content = self.read_daily(agent_id, today)
        if today_content:
            parts.append(f"=== {today} (today) ===\n{today_content}")
        else:
            parts.append(f"=== {today} (today) === (no entries yet)")

        return "\n\n".join(parts)
