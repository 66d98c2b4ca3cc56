"""
Management command to import the F1 calendar from FastF1.

This command fetches the F1 event schedule and imports:
- Season
- Races (with the qualifying/sprint/race start times the engine needs)
- Sessions (the calendar used as fallback timing)

Testing events (round 0) are skipped.

Usage:
    python manage.py import_schedule --year 2025
    python manage.py import_schedule --year 2025 --event 6
"""

import os
from datetime import timezone as dt_timezone

import fastf1
import pandas as pd
from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from league.models import Season, Race, Session

# Race timing field for each FastF1 session name
TIMING_FIELDS = {
    Session.TYPE_QUALIFYING: 'qualifying_start',
    Session.TYPE_SPRINT_QUALIFYING: 'sprint_qualifying_start',
    'Sprint Shootout': 'sprint_qualifying_start',
    Session.TYPE_SPRINT: 'sprint_start',
    Session.TYPE_RACE: 'race_start',
}


def to_utc(value):
    """pandas/py datetime (naive = UTC) -> aware datetime, None for NaT"""
    if value is None or pd.isna(value):
        return None
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if timezone.is_naive(value):
        return timezone.make_aware(value, dt_timezone.utc)
    return value


class Command(BaseCommand):
    help = 'Import the F1 calendar from FastF1 into races and sessions'

    def add_arguments(self, parser):
        parser.add_argument(
            '--year',
            type=int,
            default=timezone.now().year,
            help='Season year (default: current year)'
        )
        parser.add_argument(
            '--event',
            type=int,
            help='Import only a specific round number'
        )

    def handle(self, *args, **options):
        year = options['year']
        specific_event = options.get('event')

        self.stdout.write(self.style.SUCCESS(f'\n{"="*80}'))
        self.stdout.write(self.style.SUCCESS(f'F1 Schedule Import - {year} Season'))
        self.stdout.write(self.style.SUCCESS(f'{"="*80}\n'))

        try:
            cache_dir = getattr(settings, 'FASTF1_CACHE_DIR', None)
            if cache_dir:
                os.makedirs(cache_dir, exist_ok=True)
                fastf1.Cache.enable_cache(str(cache_dir))

            self.stdout.write('Fetching event schedule from FastF1...\n')
            schedule = fastf1.get_event_schedule(year, include_testing=False)
            self.stdout.write(self.style.SUCCESS(f'✓ Found {len(schedule)} events\n'))

            if specific_event:
                schedule = schedule[schedule['RoundNumber'] == specific_event]
                if len(schedule) == 0:
                    self.stdout.write(self.style.ERROR(f'Event {specific_event} not found'))
                    return
                self.stdout.write(self.style.NOTICE(f'Importing only Round {specific_event}\n'))

            season = self.import_season(year)
            stats = {'races_created': 0, 'races_updated': 0, 'sessions_created': 0}

            for _, event_row in schedule.iterrows():
                if int(event_row['RoundNumber']) == 0:
                    continue
                self.stdout.write(f'\nProcessing Round {event_row["RoundNumber"]}: {event_row["EventName"]}...')
                with transaction.atomic():
                    race_stats = self.import_race(season, event_row)
                for key, value in race_stats.items():
                    stats[key] += value

            self.stdout.write(self.style.SUCCESS(f'\n{"="*80}'))
            self.stdout.write(self.style.SUCCESS('Import Complete!'))
            self.stdout.write(self.style.SUCCESS(f'{"="*80}'))
            self.stdout.write('\nSummary:')
            self.stdout.write(f'  Races created:    {stats["races_created"]}')
            self.stdout.write(f'  Races updated:    {stats["races_updated"]}')
            self.stdout.write(f'  Sessions created: {stats["sessions_created"]}')
            self.stdout.write('')

        except Exception as e:
            self.stdout.write(self.style.ERROR(f'\nError during import: {e}'))
            raise

    def import_season(self, year):
        """Get or create Season for the given year."""
        season, created = Season.objects.get_or_create(
            year=year,
            defaults={
                'name': f'{year} Formula 1 Season',
                'is_active': (year == timezone.now().year)
            }
        )

        if created:
            self.stdout.write(self.style.SUCCESS(f'✓ Created season: {season}'))
        else:
            self.stdout.write(f'  Using existing season: {season}')

        return season

    def import_race(self, season, event_row):
        """Import a single race event with its sessions and timing."""
        stats = {'races_created': 0, 'races_updated': 0, 'sessions_created': 0}

        race, created = Race.objects.get_or_create(
            season=season,
            round_number=int(event_row['RoundNumber']),
            defaults={'name': event_row['EventName']},
        )

        stats['sessions_created'] = self.import_sessions(race, event_row)

        race.name = event_row['EventName']
        race.country = event_row.get('Country', '') or ''
        race.circuit = event_row.get('Location', '') or ''
        race.is_sprint_weekend = 'sprint' in str(event_row.get('EventFormat', '')).lower()

        for session in race.sessions.all():
            field = TIMING_FIELDS.get(session.session_type)
            if field and session.session_date_utc:
                setattr(race, field, session.session_date_utc)

        race.save()

        if created:
            stats['races_created'] += 1
            self.stdout.write(f'  ✓ Created race: {race.name} ({race.status})')
        else:
            stats['races_updated'] += 1
            self.stdout.write(f'  ✓ Updated race: {race.name} ({race.status})')

        return stats

    def import_sessions(self, race, event_row):
        """Import all sessions for a race."""
        sessions_created = 0

        for session_num in range(1, 6):
            session_type = event_row.get(f'Session{session_num}')
            if not session_type or pd.isna(session_type):
                continue

            session, created = Session.objects.get_or_create(
                race=race,
                session_number=session_num,
                defaults={'session_type': session_type},
            )
            session.session_type = session_type
            session.session_date_utc = to_utc(event_row.get(f'Session{session_num}DateUtc'))

            local_date = event_row.get(f'Session{session_num}Date')
            if local_date is not None and not pd.isna(local_date):
                session.session_date_local = str(local_date)

            session.save()
            if created:
                sessions_created += 1

        return sessions_created
