"""Session identity as injected by the gateway.

The gateway tells the plugin which agent is calling and from which session.
That pair, plus the labels derived from it, is the only identity the plugin
ever acts on. Tool parameters can never change it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..identity.labels import derive_labels

DEFAULT_AGENT_ID = "main"


@dataclass(frozen=True)
class SessionIdentity:
    """Identity of the agent session making a request.

    Attributes:
        session_key: Gateway session key (None when the gateway gave none)
        agent_id: Gateway agent id (defaults to "main")
        labels: Candidate identity labels derived from the session key
        sandboxed: Whether the gateway runs this session sandboxed

    Example:
        identity = SessionIdentity.from_gateway(
            session_key="agent:main:main",
            agent_id=None,
        )
        # identity.labels == ("main-session",), identity.agent_id == "main"
    """

    session_key: str | None
    agent_id: str = DEFAULT_AGENT_ID
    labels: tuple[str, ...] = field(default_factory=tuple)
    sandboxed: bool | None = None

    @classmethod
    def from_gateway(
        cls,
        session_key: str | None,
        agent_id: str | None = None,
        sandboxed: bool | None = None,
    ) -> SessionIdentity:
        """Build the identity from gateway-supplied context.

        Labels are derived from what the gateway actually sent. The agent id
        then falls back to "main" for naming memory directories, matching how
        the gateway names its default agent.
        """
        labels = tuple(derive_labels(session_key, agent_id)) if session_key else ()
        return cls(
            session_key=session_key,
            agent_id=agent_id or DEFAULT_AGENT_ID,
            labels=labels,
            sandboxed=sandboxed,
        )

    @property
    def has_session(self) -> bool:
        return bool(self.session_key)

    def __str__(self) -> str:
        return f"{self.agent_id} ({self.session_key or 'no session'})"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization/logging."""
        return {
            "session_key": self.session_key,
            "agent_id": self.agent_id,
            "labels": list(self.labels),
            "sandboxed": self.sandboxed,
        }
