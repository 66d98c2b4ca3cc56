"""
Selection models.

Structure:
- RaceSelection: one participant's picks for one round of one league
- UsedSelection: the participant's usage cycles (driver and team tracks)
- RoundModifier: optional card effects played on a round
- PointsUpdateLog: audit trail of every points assignment
"""

from django.db import models

from .base import User
from .events import Race
from .leagues import League


class RaceSelection(models.Model):
    """
    Picks for one (user, league, round).

    `race` is nullable: a schedule rebuild deletes the old Race rows, and
    the completion orchestrator repoints the survivors to the new ones.
    `round` is therefore the stable key.
    """

    STATUS_EMPTY = 'empty'
    STATUS_USER_SUBMITTED = 'user-submitted'
    STATUS_AUTO_ASSIGNED = 'auto-assigned'

    STATUS_CHOICES = [
        (STATUS_EMPTY, 'Empty'),
        (STATUS_USER_SUBMITTED, 'User submitted'),
        (STATUS_AUTO_ASSIGNED, 'Auto assigned'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='race_selections')
    league = models.ForeignKey(League, on_delete=models.CASCADE, related_name='race_selections')
    race = models.ForeignKey(
        Race,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='selections',
    )
    round = models.IntegerField()

    main_driver = models.CharField(max_length=200, blank=True)
    reserve_driver = models.CharField(max_length=200, blank=True)
    team = models.CharField(max_length=100, blank=True)

    points = models.IntegerField(default=0)
    point_breakdown = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_EMPTY)
    assigned_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['league', 'round', 'user']
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'league', 'round'],
                name='unique_selection_per_round',
            ),
            models.UniqueConstraint(
                fields=['user', 'league', 'race'],
                name='unique_selection_per_race',
            ),
        ]
        indexes = [
            models.Index(fields=['league', 'round'], name='selection_league_round_idx'),
            models.Index(fields=['race', 'status'], name='selection_race_status_idx'),
        ]

    def __str__(self):
        return f"{self.user} R{self.round} [{self.league.name}]: {self.status}"

    @property
    def is_complete(self):
        """All three picks are set"""
        return bool(self.main_driver and self.reserve_driver and self.team)


class UsedSelection(models.Model):
    """
    Usage cycles for one (user, league).

    `driver_cycles` / `team_cycles` are lists of lists; the last list is
    the current cycle. `recorded_rounds` maps track -> round -> entities
    already recorded for that round.
    """
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='used_selections')
    league = models.ForeignKey(League, on_delete=models.CASCADE, related_name='used_selections')
    driver_cycles = models.JSONField(default=list, blank=True)
    team_cycles = models.JSONField(default=list, blank=True)
    recorded_rounds = models.JSONField(default=dict, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [['user', 'league']]

    def __str__(self):
        return f"{self.user} [{self.league.name}]: {len(self.driver_cycles)} driver cycle(s)"


class RoundModifier(models.Model):
    """
    A card played by a participant on one round.

    Driver cards (`multiply`, `flat_bonus`, `teamwork`, `teamwork2`,
    `switcheroo`, `position_adjust`, `mirror`, driver `conditional_bonus`)
    act on the driver slot that actually scored. Team cards (`podium`,
    `espionage`, `undercut`, team `conditional_bonus`) act on the team slot.
    """

    TARGET_DRIVER = 'driver'
    TARGET_TEAM = 'team'

    TARGET_CHOICES = [
        (TARGET_DRIVER, 'Driver'),
        (TARGET_TEAM, 'Team'),
    ]

    EFFECT_MULTIPLY = 'multiply'
    EFFECT_FLAT_BONUS = 'flat_bonus'
    EFFECT_TEAMWORK = 'teamwork'
    EFFECT_TEAMWORK2 = 'teamwork2'
    EFFECT_SWITCHEROO = 'switcheroo'
    EFFECT_POSITION_ADJUST = 'position_adjust'
    EFFECT_MIRROR = 'mirror'
    EFFECT_CONDITIONAL_BONUS = 'conditional_bonus'
    EFFECT_PODIUM = 'podium'
    EFFECT_ESPIONAGE = 'espionage'
    EFFECT_UNDERCUT = 'undercut'

    EFFECT_CHOICES = [
        (EFFECT_MULTIPLY, 'Multiply'),
        (EFFECT_FLAT_BONUS, 'Flat bonus'),
        (EFFECT_TEAMWORK, 'Teammate points'),
        (EFFECT_TEAMWORK2, 'Plus teammate points'),
        (EFFECT_SWITCHEROO, 'Switch driver'),
        (EFFECT_POSITION_ADJUST, 'Move up positions'),
        (EFFECT_MIRROR, 'Mirror a member'),
        (EFFECT_CONDITIONAL_BONUS, 'Conditional bonus'),
        (EFFECT_PODIUM, 'Podium bonus'),
        (EFFECT_ESPIONAGE, 'Espionage'),
        (EFFECT_UNDERCUT, 'Undercut'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='round_modifiers')
    league = models.ForeignKey(League, on_delete=models.CASCADE, related_name='round_modifiers')
    round = models.IntegerField()
    target = models.CharField(max_length=10, choices=TARGET_CHOICES)
    effect_type = models.CharField(max_length=20, choices=EFFECT_CHOICES)
    effect_value = models.IntegerField(null=True, blank=True, help_text="Defaults from the card rules when empty")
    condition = models.CharField(max_length=30, blank=True, help_text="For conditional_bonus, e.g. 'top5' or 'both_top10'")
    target_name = models.CharField(max_length=200, blank=True, help_text="Driver for switcheroo, team for espionage")
    target_user = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='mirrored_by',
        help_text="Member copied by a mirror card",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['league', 'round', 'user']
        unique_together = [['user', 'league', 'round', 'target']]

    def __str__(self):
        return f"{self.user} R{self.round}: {self.effect_type} on {self.target}"


class PointsUpdateLog(models.Model):
    """Audit entry written every time a selection's points are assigned"""

    REASON_INITIAL = 'initial'
    REASON_RESCORE = 'rescore'
    REASON_ADMIN_UPDATE = 'admin_update'

    REASON_CHOICES = [
        (REASON_INITIAL, 'Initial assignment'),
        (REASON_RESCORE, 'Rescore'),
        (REASON_ADMIN_UPDATE, 'Admin update'),
    ]

    round = models.IntegerField()
    race_name = models.CharField(max_length=100)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='points_updates')
    league = models.ForeignKey(League, on_delete=models.CASCADE, related_name='points_updates')
    selection = models.ForeignKey(
        RaceSelection,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='points_updates',
    )
    previous_points = models.IntegerField(default=0)
    points = models.IntegerField()
    point_breakdown = models.JSONField(default=dict, blank=True)
    update_reason = models.CharField(max_length=20, choices=REASON_CHOICES)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['league', 'round'], name='points_log_league_round_idx'),
        ]

    def __str__(self):
        return f"{self.user} R{self.round}: {self.previous_points} -> {self.points} ({self.update_reason})"
