"""
Base models shared across the league engine.

These models represent the participants and the season catalog: which
drivers and teams can be picked in a season. The catalog sizes the
usage rotations, so a season's driver and team lists must be complete
before picks open.
"""

from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    """A league participant. Picks, usage and standings all key on the user."""
    class Meta:
        db_table = 'auth_user'
        verbose_name = 'User'
        verbose_name_plural = 'Users'

    def __str__(self):
        return self.username


class Team(models.Model):
    """A constructor. Picks and team results store `name` verbatim."""
    name = models.CharField(max_length=100, unique=True)
    short_name = models.CharField(max_length=50, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class Driver(models.Model):
    """A driver. `full_name` is the canonical pick value."""
    full_name = models.CharField(max_length=200, unique=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    abbreviation = models.CharField(max_length=3, blank=True, help_text="Three-letter code (e.g. 'VER')")
    driver_number = models.CharField(max_length=3, blank=True)
    current_team = models.ForeignKey(Team, on_delete=models.SET_NULL, null=True, blank=True, related_name='drivers')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['last_name', 'first_name']
        indexes = [
            models.Index(fields=['last_name', 'first_name'], name='driver_name_idx'),
        ]

    def __str__(self):
        if self.abbreviation:
            return f"{self.full_name} [{self.abbreviation}]"
        return self.full_name


class Season(models.Model):
    """
    Represents an F1 season and its selectable catalog.

    `drivers` and `teams` are the populations a participant rotates
    through; their sizes decide when a usage cycle is complete.
    """
    year = models.IntegerField(unique=True)
    name = models.CharField(max_length=100, help_text="e.g., '2025 Formula 1 Season'")
    is_active = models.BooleanField(default=True)
    drivers = models.ManyToManyField(Driver, related_name='seasons', blank=True)
    teams = models.ManyToManyField(Team, related_name='seasons', blank=True)

    class Meta:
        ordering = ['-year']
        indexes = [
            models.Index(fields=['year'], name='season_year_idx'),
            models.Index(fields=['is_active'], name='season_active_idx'),
        ]

    def __str__(self):
        return f"{self.year} Season"

    @property
    def driver_names(self):
        """Catalog order used for 'next available' decisions"""
        return list(self.drivers.order_by('last_name', 'first_name').values_list('full_name', flat=True))

    @property
    def team_names(self):
        return list(self.teams.order_by('name').values_list('name', flat=True))
