from django.db import models

from .base import Season
from .leagues import League


class LeagueLeaderboard(models.Model):
    """
    Materialized standings of a league for one season.

    Rebuilt from scratch on every aggregation pass, never patched.
    Each standings list holds entries of the form
    {user_id, username, total_points, race_results: [...]}
    """
    league = models.ForeignKey(League, on_delete=models.CASCADE, related_name='leaderboards')
    season = models.ForeignKey(Season, on_delete=models.CASCADE, related_name='leaderboards')
    driver_standings = models.JSONField(default=list, blank=True)
    constructor_standings = models.JSONField(default=list, blank=True)
    last_updated = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [['league', 'season']]

    def __str__(self):
        return f"{self.league.name} leaderboard ({self.season.year})"
