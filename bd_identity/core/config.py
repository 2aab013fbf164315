"""Configuration management for the identity plugin and its MCP server."""

from datetime import datetime
from pathlib import Path
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables (and an optional .env file).

    A single instance is created at startup and handed to every component
    that needs a path, URL or timeout. Nothing in the core reads the
    environment directly.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Workspace layout
    workspace_dir: Path = Field(
        default=Path.home() / ".openclaw" / "workspace",
        description="Workspace root. Memory lives in <workspace>/memory, specs in <workspace>/specs",
    )

    # Bead store (bd CLI)
    bd_binary: str = Field(default="bd", description="Path or name of the bd executable")
    bd_timeout: float = Field(
        default=10.0, gt=0, description="Timeout in seconds for a single bd invocation"
    )
    bd_list_limit: int = Field(default=20, ge=1, description="Default limit for 'list'")

    # MeiliSearch
    meili_url: str = Field(default="http://localhost:7700", description="MeiliSearch base URL")
    meili_api_key: str | None = Field(default=None, description="MeiliSearch API key")
    search_timeout: float = Field(
        default=5.0, gt=0, description="Timeout in seconds for MeiliSearch requests"
    )

    # Daily files are dated in this timezone. Accepts TIMEZONE, TZ or OPENCLAW_TZ.
    timezone: str = Field(
        default="America/Chicago",
        validation_alias=AliasChoices("timezone", "tz", "openclaw_tz"),
    )

    # Roles
    coordinator_agent: str = Field(
        default="main", description="Agent id of the coordinating agent (promotes tasks, writes specs)"
    )
    agent_roster: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["main"],
        description="Known agent ids. Comma-separated when set from the environment.",
    )

    # Gateway-injected session context. The agent never sets these itself.
    session_key: str | None = Field(
        default=None, validation_alias=AliasChoices("session_key", "bd_session_key")
    )
    agent_id: str | None = Field(
        default=None, validation_alias=AliasChoices("agent_id", "bd_agent_id")
    )
    sandboxed: bool | None = Field(
        default=None, validation_alias=AliasChoices("sandboxed", "bd_sandboxed")
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_dir: Path = Field(
        default=Path.home() / ".bd-identity" / "logs",
        description="Directory for log files",
    )

    @field_validator("workspace_dir", "log_dir")
    @classmethod
    def expand_path(cls, v: Path) -> Path:
        """Expand ~ in configured paths."""
        return Path(v).expanduser()

    @field_validator("agent_roster", mode="before")
    @classmethod
    def split_roster(cls, v: object) -> object:
        """Accept 'main,coder,researcher' as well as a list."""
        if isinstance(v, str):
            return [name.strip() for name in v.split(",") if name.strip()]
        return v

    @field_validator("meili_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the MeiliSearch URL so paths can be appended."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("MeiliSearch URL must start with http:// or https://")
        return v.rstrip("/")

    @property
    def memory_root(self) -> Path:
        """Root directory holding every agent's memory directory."""
        return self.workspace_dir / "memory"

    @property
    def specs_dir(self) -> Path:
        """Directory holding shared spec documents."""
        return self.workspace_dir / "specs"

    @property
    def roster(self) -> frozenset[str]:
        """Agent ids that count as agent-name labels, coordinator included."""
        return frozenset([*self.agent_roster, self.coordinator_agent])

    def get_log_file(self, component_name: str = "bd_identity") -> Path:
        """Get a log file path for a specific component.

        Creates log files with the format: {component_name}_{date}.log

        Args:
            component_name: Name of the component (server name, script, etc.)

        Returns:
            Path to the log file
        """
        date_str = datetime.now().strftime("%Y-%m-%d")
        safe_name = "".join(c if c.isalnum() or c in "_-" else "_" for c in component_name)
        return self.log_dir / f"{safe_name}_{date_str}.log"
