from .application import (
    Application,
    ApplicationDraft,
    ApplicationStats,
    ApplicationStatus,
    ApplicationUpdate,
    ListResult,
    MutationResult,
    PersistedIn,
    StatusChange,
)
from .explore import LeaderboardEntry, PublicApplication
from .identity import Identity
from .suggestion import Suggestion, SuggestionRequest

__all__ = [
    "Application",
    "ApplicationDraft",
    "ApplicationStats",
    "ApplicationStatus",
    "ApplicationUpdate",
    "Identity",
    "LeaderboardEntry",
    "ListResult",
    "MutationResult",
    "PersistedIn",
    "PublicApplication",
    "StatusChange",
    "Suggestion",
    "SuggestionRequest",
]
