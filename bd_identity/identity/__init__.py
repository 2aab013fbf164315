"""Session label derivation and identity bead resolution."""

from .labels import derive_labels, is_channel_token, is_numeric
from .resolver import IdentityResolution, IdentityResolver, choose_creation_label

__all__ = [
    "IdentityResolution",
    "IdentityResolver",
    "choose_creation_label",
    "derive_labels",
    "is_channel_token",
    "is_numeric",
]
