"""
League models module.

Existing code can use: from league.models import Race, RaceSelection, etc.

Model organization:
- base.py: Core entities and the season catalog (User, Team, Driver, Season)
- events.py: Race weekends and their results (Race, Session, DriverResult, TeamResult)
- leagues.py: Competitions and membership (League)
- selections.py: Picks, usage cycles, cards and audit (RaceSelection, UsedSelection, RoundModifier, PointsUpdateLog)
- standings.py: Materialized leaderboards (LeagueLeaderboard)
"""

# Import base models
from .base import (
    User,
    Team,
    Driver,
    Season,
)

# Import event models
from .events import (
    Race,
    Session,
    DriverResult,
    TeamResult,
)

# Import league models
from .leagues import (
    League,
    join_league,
)

# Import selection models
from .selections import (
    RaceSelection,
    UsedSelection,
    RoundModifier,
    PointsUpdateLog,
)

# Import standings models
from .standings import (
    LeagueLeaderboard,
)

__all__ = [
    # Base models (base.py)
    'User',
    'Team',
    'Driver',
    'Season',
    # Event models (events.py)
    'Race',
    'Session',
    'DriverResult',
    'TeamResult',
    # League models (leagues.py)
    'League',
    'join_league',
    # Selection models (selections.py)
    'RaceSelection',
    'UsedSelection',
    'RoundModifier',
    'PointsUpdateLog',
    # Standings (standings.py)
    'LeagueLeaderboard',
]
