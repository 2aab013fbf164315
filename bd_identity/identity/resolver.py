"""Identity bead discovery and creation."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..storage.bead_store import BeadStore
from ..storage.query_builder import LabelQueryBuilder
from ..storage.records import IDENTITY_LABEL, SESSION_CONTEXT_LABEL
from .labels import is_channel_token, is_numeric

logger = logging.getLogger(__name__)

UNKNOWN_LABEL = "unknown"


@dataclass(frozen=True)
class IdentityResolution:
    """Outcome of ``IdentityResolver.create_or_get``.

    Attributes:
        bead_id: The identity bead id
        label: The label the bead was created with (None if it already existed)
        created: True if this call created the bead
    """

    bead_id: str
    label: str | None = None
    created: bool = False


def choose_creation_label(labels: list[str], agent_id: str | None = None) -> str:
    """Pick the label a new identity bead is created with.

    Preference: a ``discord-`` label, then the first label that is not purely
    numeric, then the agent id, then ``unknown``. Raw channel ids are never
    chosen, because strategy B matches them by substring later.
    """
    for label in labels:
        if label.startswith("discord-"):
            return label
    for label in labels:
        if not is_numeric(label):
            return label
    return agent_id or UNKNOWN_LABEL


class IdentityResolver:
    """Finds or creates the identity bead for a set of session labels.

    Resolution is re-run on every tool invocation; nothing is cached, so a
    label change in the store is picked up on the next call.

    Store failures are never swallowed: an unreachable store raises
    ``InfrastructureError`` while "nothing matched" returns None.
    """

    def __init__(self, store: BeadStore):
        self.store = store

    async def resolve(self, labels: list[str]) -> str | None:
        """Return the id of the identity bead matching the labels, if any.

        Strategy A tries an exact ``agent-identity AND label=<label>`` query
        per label, in order. Strategy B, for long numeric tokens only, scans
        all identity beads for a label containing the token as a substring
        (covers beads labelled ``discord-<channelId>``).
        """
        for label in labels:
            query = LabelQueryBuilder().label(IDENTITY_LABEL).label(label).build()
            beads = await self.store.query(query)
            if beads:
                logger.debug(f"Identity resolved by label '{label}': {beads[0].id}")
                return beads[0].id

        channel_tokens = [label for label in labels if is_channel_token(label)]
        if channel_tokens:
            query = LabelQueryBuilder().label(IDENTITY_LABEL).build()
            identities = await self.store.query(query)
            for token in channel_tokens:
                for bead in identities:
                    if any(token in bead_label for bead_label in bead.labels):
                        logger.debug(f"Identity resolved by substring '{token}': {bead.id}")
                        return bead.id

        return None

    async def create_or_get(self, labels: list[str], agent_id: str | None = None) -> IdentityResolution:
        """Resolve the identity bead, creating it when none exists.

        Idempotent under sequential calls. Two concurrent calls for the same
        labels may both miss and both create; that window is accepted.

        Args:
            labels: Candidate labels from ``derive_labels``
            agent_id: Gateway agent id, used as a creation label fallback

        Returns:
            IdentityResolution with ``created`` telling the two outcomes apart
        """
        existing = await self.resolve(labels)
        if existing:
            return IdentityResolution(bead_id=existing, created=False)

        label = choose_creation_label(labels, agent_id)
        bead_id = await self.store.create(
            f"Agent Identity: {label}",
            labels=[IDENTITY_LABEL, label, SESSION_CONTEXT_LABEL],
            description=f"Identity bead for '{label}'. Auto-created by bd-identity.",
        )
        logger.info(f"Created identity bead {bead_id} (label: {label})")
        return IdentityResolution(bead_id=bead_id, label=label, created=True)
