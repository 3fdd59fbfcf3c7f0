"""reactionTally core - reaction counting, opt-outs and CSV persistence."""

from .config import ConfigurationError, TallyConfig
from .engine import ReactionCounter, ReactionDecision, ReactionEvent
from .optout import OptOutRegistry, OptOutResult
from .storage import StorageError, TallyRecord, TallyStorage, UNKNOWN_USER_NAME

__all__ = [
    "ConfigurationError",
    "TallyConfig",
    "ReactionCounter",
    "ReactionDecision",
    "ReactionEvent",
    "OptOutRegistry",
    "OptOutResult",
    "StorageError",
    "TallyRecord",
    "TallyStorage",
    "UNKNOWN_USER_NAME",
]
