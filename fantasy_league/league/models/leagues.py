"""
League models: a private competition for one season and its members.
"""

import secrets
import string

from django.db import models, transaction

from .base import User, Season


def generate_league_code(length=8):
    alphabet = string.ascii_uppercase + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


class League(models.Model):
    """
    A group of participants competing over one season.

    Only leagues with `season_status == active` are walked by the
    completion orchestrator and the deadline sweep.
    """

    STATUS_ACTIVE = 'active'
    STATUS_COMPLETED = 'completed'

    SEASON_STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_COMPLETED, 'Completed'),
    ]

    name = models.CharField(max_length=100)
    code = models.CharField(max_length=12, unique=True, default=generate_league_code)
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='owned_leagues')
    members = models.ManyToManyField(User, related_name='leagues', blank=True)
    season = models.ForeignKey(Season, on_delete=models.CASCADE, related_name='leagues')
    season_status = models.CharField(
        max_length=10,
        choices=SEASON_STATUS_CHOICES,
        default=STATUS_ACTIVE,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['season', 'name']
        indexes = [
            models.Index(fields=['season', 'season_status'], name='league_season_status_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.season.year})"

    def join(self, user):
        """
        Add `user` as a member and give them an empty selection for every
        round of the season. Joining twice is harmless.
        """
        from league.processing.selections import initialize_league_selections

        with transaction.atomic():
            self.members.add(user)
            return initialize_league_selections(self, users=[user])


def join_league(code, user):
    """Join the league identified by its invite `code`"""
    league = League.objects.select_related('season').get(code=code.strip().upper())
    league.join(user)
    return league
