"""Tests for session key label derivation."""

import pytest

from bd_identity.identity.labels import derive_labels, is_channel_token, is_numeric

CHANNEL = "1467935902931222589"


class TestDeriveLabels:
    """Tests for derive_labels."""

    def test_main_session(self):
        """agent:main:main yields main-session and nothing else."""
        assert derive_labels("agent:main:main") == ["main-session"]

    def test_main_session_comes_first(self):
        """main-session precedes the agent id."""
        assert derive_labels("agent:main:main", "main") == ["main-session", "main"]

    @pytest.mark.parametrize(
        "session_key",
        ["agent:main:main", "agent:main:main:extra", "agent:main:main:discord:channel:123"],
    )
    def test_main_session_pattern_always_first(self, session_key: str):
        """Any key with main:main in positions 1 and 2 starts with main-session."""
        assert derive_labels(session_key, "main")[0] == "main-session"

    def test_discord_channel_token(self):
        """The long numeric token after 'discord' is emitted verbatim, then the agent id."""
        labels = derive_labels(f"agent:discord:discord:channel:{CHANNEL}", "discord")
        assert labels == [CHANNEL, "discord"]

    def test_discord_token_scanned_from_end(self):
        """The last long token after 'discord' wins."""
        other = "1111111111111111111"
        labels = derive_labels(f"agent:x:discord:guild:{other}:channel:{CHANNEL}")
        assert labels == [CHANNEL]

    def test_short_numbers_are_not_channel_tokens(self):
        """Fewer than 15 digits is not a channel token."""
        assert derive_labels("agent:discord:discord:channel:12345678901234") == []

    def test_digits_before_discord_are_ignored(self):
        """Only segments after the discord segment are scanned."""
        assert derive_labels(f"agent:{CHANNEL}:discord:channel") == []

    def test_agent_id_not_duplicated(self):
        """An agent id already derived is not appended twice."""
        assert derive_labels(f"agent:x:discord:{CHANNEL}", CHANNEL) == [CHANNEL]

    def test_unstructured_key_degrades_gracefully(self):
        """A key with no known pattern yields just the agent id."""
        assert derive_labels("opaque", "coder") == ["coder"]
        assert derive_labels("", None) == []

    def test_subagent_session(self):
        """Sub-agent sessions fall back to the agent id."""
        assert derive_labels("agent:coder:subagent:7f3c", "coder") == ["coder"]


class TestLabelPredicates:
    """Tests for is_channel_token and is_numeric."""

    def test_is_channel_token(self):
        assert is_channel_token(CHANNEL)
        assert is_channel_token("1" * 15)
        assert not is_channel_token("1" * 14)
        assert not is_channel_token(f"discord-{CHANNEL}")

    def test_is_numeric(self):
        assert is_numeric("42")
        assert not is_numeric("discord")
        assert not is_numeric("")
