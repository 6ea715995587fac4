"""Request mode of the classification pipeline."""

from enum import Enum


class ProcessMode(str, Enum):
    """Controls which parts of the pipeline result are returned."""

    FULL = "full"  # candidates + AI suggestion
    DATABASE_ONLY = "database_only"  # candidates only, never calls the chat model
    AI_ONLY = "ai_only"  # AI suggestion only (candidates are still computed)

    @classmethod
    def from_flags(cls, only_database: bool, only_ai: bool) -> "ProcessMode":
        """Resolve the mode from the request flags; only_database wins."""
        if only_database:
            return cls.DATABASE_ONLY
        if only_ai:
            return cls.AI_ONLY
        return cls.FULL
