"""Admin module (chip values, leaderboard, console)."""
from .chip_values import ChipValueManager, ChipValueUpdate
from .standings import Leaderboard, LeaderboardEntry, PlayerStats, format_standings_table
from .console import AdminConsole
from .profiles import ProfileManager

__all__ = [
    "ChipValueManager",
    "ChipValueUpdate",
    "Leaderboard",
    "LeaderboardEntry",
    "PlayerStats",
    "format_standings_table",
    "AdminConsole",
    "ProfileManager",
]
