"""
Event models for race weekends.

Structure:
- Race: one round of the season (the event record the engine scores)
- Session: per-session calendar imported from FastF1; fallback timing
  source when a Race is missing a timing field
- DriverResult: one classified (or DNF/DNS/DSQ) driver in the Grand Prix
  or the Sprint
- TeamResult: per-team aggregate of race + sprint points for a round
"""

from django.db import models, transaction
from django.utils import timezone

from league.processing import lifecycle
from league.signals import round_completed
from .base import Season


class Race(models.Model):
    """
    Represents an individual Grand Prix round in a season.

    Status is derived from the timing fields every time the race is saved
    (see `league.processing.lifecycle`). Once a race is completed it stays
    completed. The first save that moves a race into `completed` hands a
    `round_completed` event to the scoring orchestrator after commit.
    """

    STATUS_SCHEDULED = lifecycle.STATUS_SCHEDULED
    STATUS_QUALIFYING = lifecycle.STATUS_QUALIFYING
    STATUS_SPRINT_QUALIFYING = lifecycle.STATUS_SPRINT_QUALIFYING
    STATUS_SPRINT = lifecycle.STATUS_SPRINT
    STATUS_IN_PROGRESS = lifecycle.STATUS_IN_PROGRESS
    STATUS_COMPLETED = lifecycle.STATUS_COMPLETED
    STATUS_CANCELLED = lifecycle.STATUS_CANCELLED

    STATUS_CHOICES = [
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_QUALIFYING, 'Qualifying'),
        (STATUS_SPRINT_QUALIFYING, 'Sprint Qualifying'),
        (STATUS_SPRINT, 'Sprint'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    season = models.ForeignKey(Season, on_delete=models.CASCADE, related_name='races')
    name = models.CharField(max_length=100, help_text="e.g., 'Bahrain Grand Prix'")
    round_number = models.IntegerField(
        help_text="Race number in season (1 for first race, 2 for second, etc.)"
    )
    circuit = models.CharField(max_length=200, blank=True)
    country = models.CharField(max_length=100, blank=True)
    is_sprint_weekend = models.BooleanField(default=False)

    # Timing fields (UTC)
    qualifying_start = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Selection deadline: picks lock when qualifying starts"
    )
    sprint_qualifying_start = models.DateTimeField(null=True, blank=True)
    sprint_start = models.DateTimeField(null=True, blank=True)
    race_start = models.DateTimeField(null=True, blank=True)

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_SCHEDULED,
    )
    results_updated_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the results feed last replaced this round's results"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['season', 'round_number']
        unique_together = [['season', 'round_number']]
        indexes = [
            models.Index(fields=['season', 'round_number'], name='race_season_round_idx'),
            models.Index(fields=['status'], name='race_status_idx'),
            models.Index(fields=['qualifying_start'], name='race_qualifying_idx'),
        ]

    def __str__(self):
        return f"{self.season.year} {self.name} (Round {self.round_number})"

    def save(self, *args, refresh_status=True, **kwargs):
        previous_status = None
        if self.pk:
            previous_status = (
                Race.objects.filter(pk=self.pk).values_list('status', flat=True).first()
            )

        if refresh_status:
            self.status = lifecycle.resolve_status(self, timezone.now())
            update_fields = kwargs.get('update_fields')
            if update_fields is not None and 'status' not in update_fields:
                kwargs['update_fields'] = list(update_fields) + ['status']

        super().save(*args, **kwargs)

        if self.status == self.STATUS_COMPLETED and previous_status != self.STATUS_COMPLETED:
            self.announce_completion()

    def announce_completion(self):
        """Hand this round to the completion receivers once the transaction commits"""
        race = self
        transaction.on_commit(lambda: round_completed.send(sender=Race, race=race))

    def is_locked(self, now=None):
        """Picks are frozen once qualifying has started"""
        return lifecycle.is_locked(self.timing(), now or timezone.now())

    def timing(self):
        """
        Timing fields for this round, filling gaps from the session calendar.
        """
        timing = lifecycle.RoundTiming(
            qualifying_start=self.qualifying_start,
            race_start=self.race_start,
            sprint_qualifying_start=self.sprint_qualifying_start,
            sprint_start=self.sprint_start,
        )
        if timing.is_complete(self.is_sprint_weekend) or not self.pk:
            return timing
        return timing.merged_with(self.session_timing())

    def session_timing(self):
        """Timing as recorded by the imported session calendar"""
        by_type = {
            session.session_type: session.session_date_utc
            for session in self.sessions.all()
            if session.session_date_utc
        }
        return lifecycle.RoundTiming(
            qualifying_start=by_type.get(Session.TYPE_QUALIFYING),
            race_start=by_type.get(Session.TYPE_RACE),
            sprint_qualifying_start=by_type.get(Session.TYPE_SPRINT_QUALIFYING),
            sprint_start=by_type.get(Session.TYPE_SPRINT),
        )

    @property
    def has_results(self):
        """Both the driver results and the team aggregate are present"""
        if not self.pk:
            return False
        return (
            self.driver_results.filter(session_type=DriverResult.SESSION_RACE).exists()
            and self.team_results.exists()
        )


class Session(models.Model):
    """
    Individual session within a race weekend (FastF1 naming).

    Only qualifying/sprint/race sessions matter to the engine; practice
    sessions are imported so the calendar mirrors FastF1.
    """

    TYPE_PRACTICE_1 = 'Practice 1'
    TYPE_PRACTICE_2 = 'Practice 2'
    TYPE_PRACTICE_3 = 'Practice 3'
    TYPE_QUALIFYING = 'Qualifying'
    TYPE_SPRINT_QUALIFYING = 'Sprint Qualifying'
    TYPE_SPRINT = 'Sprint'
    TYPE_RACE = 'Race'

    SESSION_TYPE_CHOICES = [
        (TYPE_PRACTICE_1, 'Free Practice 1'),
        (TYPE_PRACTICE_2, 'Free Practice 2'),
        (TYPE_PRACTICE_3, 'Free Practice 3'),
        (TYPE_QUALIFYING, 'Qualifying'),
        (TYPE_SPRINT_QUALIFYING, 'Sprint Qualifying'),
        (TYPE_SPRINT, 'Sprint Race'),
        (TYPE_RACE, 'Race'),
    ]

    race = models.ForeignKey(
        Race,
        on_delete=models.CASCADE,
        related_name='sessions',
        help_text="The race weekend this session belongs to"
    )
    session_type = models.CharField(
        max_length=30,
        choices=SESSION_TYPE_CHOICES,
        help_text="Type of session (Practice 1, Qualifying, Race, etc.)"
    )
    session_number = models.IntegerField(
        help_text="Session number in weekend (1-5, matching FastF1 Session1-Session5)"
    )
    session_date_local = models.CharField(
        max_length=100,
        blank=True,
        help_text="Session date/time in local timezone (as string from FastF1)"
    )
    session_date_utc = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Session date/time in UTC"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['race', 'session_number']
        unique_together = [['race', 'session_number']]
        indexes = [
            models.Index(fields=['session_type'], name='session_type_idx'),
            models.Index(fields=['session_date_utc'], name='session_date_idx'),
        ]

    def __str__(self):
        return f"{self.race.name} - {self.session_type}"


class DriverResult(models.Model):
    """
    One driver's classification in the Grand Prix or the Sprint.

    `points` is whatever the results feed recorded for the row; DNF and
    DSQ rows usually carry 0 but are still participation, unlike DNS.
    """

    SESSION_RACE = 'race'
    SESSION_SPRINT = 'sprint'

    SESSION_CHOICES = [
        (SESSION_RACE, 'Grand Prix'),
        (SESSION_SPRINT, 'Sprint'),
    ]

    race = models.ForeignKey(Race, on_delete=models.CASCADE, related_name='driver_results')
    session_type = models.CharField(max_length=10, choices=SESSION_CHOICES, default=SESSION_RACE)
    driver_name = models.CharField(max_length=200)
    team_name = models.CharField(max_length=100)
    car_number = models.CharField(max_length=3, blank=True)
    position = models.IntegerField(null=True, blank=True, help_text="Null when not classified")
    points = models.IntegerField(default=0)
    did_not_finish = models.BooleanField(default=False)
    did_not_start = models.BooleanField(default=False)
    disqualified = models.BooleanField(default=False)

    class Meta:
        ordering = ['race', 'session_type', 'position']
        unique_together = [['race', 'session_type', 'driver_name']]
        indexes = [
            models.Index(fields=['race', 'session_type'], name='result_race_session_idx'),
        ]

    def __str__(self):
        return f"{self.race} [{self.session_type}] {self.driver_name}: {self.status_label}"

    @property
    def status_label(self):
        if self.did_not_start:
            return 'DNS'
        if self.disqualified:
            return 'DSQ'
        if self.did_not_finish:
            return 'DNF'
        return f"P{self.position}" if self.position else 'NC'


class TeamResult(models.Model):
    """
    Aggregated team points for a round. Sprint points are already folded
    into `total_points`.
    """
    race = models.ForeignKey(Race, on_delete=models.CASCADE, related_name='team_results')
    team_name = models.CharField(max_length=100)
    position = models.IntegerField()
    race_points = models.IntegerField(default=0)
    sprint_points = models.IntegerField(default=0)
    total_points = models.IntegerField(default=0)

    class Meta:
        ordering = ['race', 'position']
        unique_together = [['race', 'team_name']]

    def __str__(self):
        return f"{self.race} {self.team_name}: {self.total_points} pts"
