"""Exceptions raised by the leaderboard package."""


class LeaderboardError(Exception):
    """Base class for errors shown to the user as a message."""


class ValidationError(LeaderboardError):
    """Input was rejected before any store call was made."""


class AdminRequired(LeaderboardError):
    def __init__(self, message: str = "Admin access required"):
        super().__init__(message)


class ConfigurationError(LeaderboardError):
    """A required setting (admin code, database URL) is missing."""
