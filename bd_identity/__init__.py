"""bd-identity: session-derived agent identity and access control over beads.

Agents get an identity bead resolved from their gateway session, per-agent
workspace memory, and an access-controlled task/topic lifecycle on top of
the bd bead store.
"""

from .core.config import Settings
from .identity import IdentityResolver, derive_labels
from .lifecycle import TaskLifecycle, TopicLifecycle
from .permissions import AccessGuard, SessionIdentity, ToolContext
from .storage import BeadStore, CliBeadStore, Record
from .utils.errors import BeadIdentityError

__version__ = "0.1.0"

__all__ = [
    "AccessGuard",
    "BeadIdentityError",
    "BeadStore",
    "CliBeadStore",
    "IdentityResolver",
    "Record",
    "SessionIdentity",
    "Settings",
    "TaskLifecycle",
    "ToolContext",
    "TopicLifecycle",
    "__version__",
    "derive_labels",
]
