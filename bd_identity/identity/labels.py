"""Session key to identity label derivation.

Session keys come from the gateway in several shapes, for example::

    agent:main:main
    agent:discord:discord:channel:1467935902931222589
    agent:coder:subagent:7f3c

Derivation never fails: a key that matches no known pattern simply yields
fewer labels. Order matters, since the resolver tries labels first to last,
so structural labels come before the bare agent id.
"""

import re

from ..storage.records import MAIN_SESSION_LABEL

# Discord snowflake ids (channel, guild, user) are 17-20 digits; 15 is a safe floor
CHANNEL_TOKEN_PATTERN = re.compile(r"^\d{15,}$")
NUMERIC_PATTERN = re.compile(r"^\d+$")

DISCORD_SEGMENT = "discord"


def is_channel_token(label: str) -> bool:
    """True for long numeric tokens (snowflake-style channel or peer ids)."""
    return bool(CHANNEL_TOKEN_PATTERN.match(label))


def is_numeric(label: str) -> bool:
    return bool(NUMERIC_PATTERN.match(label))


def derive_labels(session_key: str, agent_id: str | None = None) -> list[str]:
    """Derive candidate identity labels from a session key.

    Args:
        session_key: Gateway session key, ``agent:<agentId>:<scope...>``
        agent_id: Gateway-supplied agent id, appended last when present

    Returns:
        Ordered, duplicate-free list of labels (possibly empty)

    Example:
        >>> derive_labels("agent:main:main")
        ['main-session']
        >>> derive_labels("agent:discord:discord:channel:1467935902931222589", "discord")
        ['1467935902931222589', 'discord']
    """
    labels: list[str] = []
    parts = session_key.split(":")

    if len(parts) >= 2:
        if parts[1] == "main" and len(parts) > 2 and parts[2] == "main":
            labels.append(MAIN_SESSION_LABEL)

        if DISCORD_SEGMENT in parts:
            discord_idx = parts.index(DISCORD_SEGMENT)
            for segment in reversed(parts[discord_idx + 1 :]):
                if is_channel_token(segment):
                    labels.append(segment)
                    break

    if agent_id and agent_id not in labels:
        labels.append(agent_id)
    return labels
