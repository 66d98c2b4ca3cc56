import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import league.models.leagues


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'User',
                'verbose_name_plural': 'Users',
                'db_table': 'auth_user',
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Team',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('short_name', models.CharField(blank=True, max_length=50)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Driver',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('full_name', models.CharField(max_length=200, unique=True)),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(max_length=100)),
                ('abbreviation', models.CharField(blank=True, help_text="Three-letter code (e.g. 'VER')", max_length=3)),
                ('driver_number', models.CharField(blank=True, max_length=3)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('current_team', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='drivers', to='league.team')),
            ],
            options={
                'ordering': ['last_name', 'first_name'],
                'indexes': [models.Index(fields=['last_name', 'first_name'], name='driver_name_idx')],
            },
        ),
        migrations.CreateModel(
            name='Season',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('year', models.IntegerField(unique=True)),
                ('name', models.CharField(help_text="e.g., '2025 Formula 1 Season'", max_length=100)),
                ('is_active', models.BooleanField(default=True)),
                ('drivers', models.ManyToManyField(blank=True, related_name='seasons', to='league.driver')),
                ('teams', models.ManyToManyField(blank=True, related_name='seasons', to='league.team')),
            ],
            options={
                'ordering': ['-year'],
                'indexes': [
                    models.Index(fields=['year'], name='season_year_idx'),
                    models.Index(fields=['is_active'], name='season_active_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Race',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text="e.g., 'Bahrain Grand Prix'", max_length=100)),
                ('round_number', models.IntegerField(help_text='Race number in season (1 for first race, 2 for second, etc.)')),
                ('circuit', models.CharField(blank=True, max_length=200)),
                ('country', models.CharField(blank=True, max_length=100)),
                ('is_sprint_weekend', models.BooleanField(default=False)),
                ('qualifying_start', models.DateTimeField(blank=True, help_text='Selection deadline: picks lock when qualifying starts', null=True)),
                ('sprint_qualifying_start', models.DateTimeField(blank=True, null=True)),
                ('sprint_start', models.DateTimeField(blank=True, null=True)),
                ('race_start', models.DateTimeField(blank=True, null=True)),
                ('status', models.CharField(choices=[('scheduled', 'Scheduled'), ('qualifying', 'Qualifying'), ('sprint_qualifying', 'Sprint Qualifying'), ('sprint', 'Sprint'), ('in_progress', 'In Progress'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='scheduled', max_length=20)),
                ('results_updated_at', models.DateTimeField(blank=True, help_text="When the results feed last replaced this round's results", null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('season', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='races', to='league.season')),
            ],
            options={
                'ordering': ['season', 'round_number'],
                'indexes': [
                    models.Index(fields=['season', 'round_number'], name='race_season_round_idx'),
                    models.Index(fields=['status'], name='race_status_idx'),
                    models.Index(fields=['qualifying_start'], name='race_qualifying_idx'),
                ],
                'unique_together': {('season', 'round_number')},
            },
        ),
        migrations.CreateModel(
            name='Session',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('session_type', models.CharField(choices=[('Practice 1', 'Free Practice 1'), ('Practice 2', 'Free Practice 2'), ('Practice 3', 'Free Practice 3'), ('Qualifying', 'Qualifying'), ('Sprint Qualifying', 'Sprint Qualifying'), ('Sprint', 'Sprint Race'), ('Race', 'Race')], help_text='Type of session (Practice 1, Qualifying, Race, etc.)', max_length=30)),
                ('session_number', models.IntegerField(help_text='Session number in weekend (1-5, matching FastF1 Session1-Session5)')),
                ('session_date_local', models.CharField(blank=True, help_text='Session date/time in local timezone (as string from FastF1)', max_length=100)),
                ('session_date_utc', models.DateTimeField(blank=True, help_text='Session date/time in UTC', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('race', models.ForeignKey(help_text='The race weekend this session belongs to', on_delete=django.db.models.deletion.CASCADE, related_name='sessions', to='league.race')),
            ],
            options={
                'ordering': ['race', 'session_number'],
                'indexes': [
                    models.Index(fields=['session_type'], name='session_type_idx'),
                    models.Index(fields=['session_date_utc'], name='session_date_idx'),
                ],
                'unique_together': {('race', 'session_number')},
            },
        ),
        migrations.CreateModel(
            name='DriverResult',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('session_type', models.CharField(choices=[('race', 'Grand Prix'), ('sprint', 'Sprint')], default='race', max_length=10)),
                ('driver_name', models.CharField(max_length=200)),
                ('team_name', models.CharField(max_length=100)),
                ('car_number', models.CharField(blank=True, max_length=3)),
                ('position', models.IntegerField(blank=True, help_text='Null when not classified', null=True)),
                ('points', models.IntegerField(default=0)),
                ('did_not_finish', models.BooleanField(default=False)),
                ('did_not_start', models.BooleanField(default=False)),
                ('disqualified', models.BooleanField(default=False)),
                ('race', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='driver_results', to='league.race')),
            ],
            options={
                'ordering': ['race', 'session_type', 'position'],
                'indexes': [models.Index(fields=['race', 'session_type'], name='result_race_session_idx')],
                'unique_together': {('race', 'session_type', 'driver_name')},
            },
        ),
        migrations.CreateModel(
            name='TeamResult',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('team_name', models.CharField(max_length=100)),
                ('position', models.IntegerField()),
                ('race_points', models.IntegerField(default=0)),
                ('sprint_points', models.IntegerField(default=0)),
                ('total_points', models.IntegerField(default=0)),
                ('race', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='team_results', to='league.race')),
            ],
            options={
                'ordering': ['race', 'position'],
                'unique_together': {('race', 'team_name')},
            },
        ),
        migrations.CreateModel(
            name='League',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('code', models.CharField(default=league.models.leagues.generate_league_code, max_length=12, unique=True)),
                ('season_status', models.CharField(choices=[('active', 'Active'), ('completed', 'Completed')], default='active', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('members', models.ManyToManyField(blank=True, related_name='leagues', to=settings.AUTH_USER_MODEL)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='owned_leagues', to=settings.AUTH_USER_MODEL)),
                ('season', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='leagues', to='league.season')),
            ],
            options={
                'ordering': ['season', 'name'],
                'indexes': [models.Index(fields=['season', 'season_status'], name='league_season_status_idx')],
            },
        ),
        migrations.CreateModel(
            name='RaceSelection',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('round', models.IntegerField()),
                ('main_driver', models.CharField(blank=True, max_length=200)),
                ('reserve_driver', models.CharField(blank=True, max_length=200)),
                ('team', models.CharField(blank=True, max_length=100)),
                ('points', models.IntegerField(default=0)),
                ('point_breakdown', models.JSONField(blank=True, default=dict)),
                ('status', models.CharField(choices=[('empty', 'Empty'), ('user-submitted', 'User submitted'), ('auto-assigned', 'Auto assigned')], default='empty', max_length=20)),
                ('assigned_at', models.DateTimeField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('league', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='race_selections', to='league.league')),
                ('race', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='selections', to='league.race')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='race_selections', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['league', 'round', 'user'],
                'indexes': [
                    models.Index(fields=['league', 'round'], name='selection_league_round_idx'),
                    models.Index(fields=['race', 'status'], name='selection_race_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('user', 'league', 'round'), name='unique_selection_per_round'),
                    models.UniqueConstraint(fields=('user', 'league', 'race'), name='unique_selection_per_race'),
                ],
            },
        ),
        migrations.CreateModel(
            name='UsedSelection',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('driver_cycles', models.JSONField(blank=True, default=list)),
                ('team_cycles', models.JSONField(blank=True, default=list)),
                ('recorded_rounds', models.JSONField(blank=True, default=dict)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('league', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='used_selections', to='league.league')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='used_selections', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'unique_together': {('user', 'league')},
            },
        ),
        migrations.CreateModel(
            name='RoundModifier',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('round', models.IntegerField()),
                ('target', models.CharField(choices=[('driver', 'Driver'), ('team', 'Team')], max_length=10)),
                ('effect_type', models.CharField(choices=[('multiply', 'Multiply'), ('flat_bonus', 'Flat bonus'), ('teamwork', 'Teammate points'), ('teamwork2', 'Plus teammate points'), ('switcheroo', 'Switch driver'), ('position_adjust', 'Move up positions'), ('mirror', 'Mirror a member'), ('conditional_bonus', 'Conditional bonus'), ('podium', 'Podium bonus'), ('espionage', 'Espionage'), ('undercut', 'Undercut')], max_length=20)),
                ('effect_value', models.IntegerField(blank=True, help_text='Defaults from the card rules when empty', null=True)),
                ('condition', models.CharField(blank=True, help_text="For conditional_bonus, e.g. 'top5' or 'both_top10'", max_length=30)),
                ('target_name', models.CharField(blank=True, help_text='Driver for switcheroo, team for espionage', max_length=200)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('league', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='round_modifiers', to='league.league')),
                ('target_user', models.ForeignKey(blank=True, help_text='Member copied by a mirror card', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='mirrored_by', to=settings.AUTH_USER_MODEL)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='round_modifiers', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['league', 'round', 'user'],
                'unique_together': {('user', 'league', 'round', 'target')},
            },
        ),
        migrations.CreateModel(
            name='PointsUpdateLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('round', models.IntegerField()),
                ('race_name', models.CharField(max_length=100)),
                ('previous_points', models.IntegerField(default=0)),
                ('points', models.IntegerField()),
                ('point_breakdown', models.JSONField(blank=True, default=dict)),
                ('update_reason', models.CharField(choices=[('initial', 'Initial assignment'), ('rescore', 'Rescore'), ('admin_update', 'Admin update')], max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('league', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='points_updates', to='league.league')),
                ('selection', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='points_updates', to='league.raceselection')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='points_updates', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['league', 'round'], name='points_log_league_round_idx')],
            },
        ),
        migrations.CreateModel(
            name='LeagueLeaderboard',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('driver_standings', models.JSONField(blank=True, default=list)),
                ('constructor_standings', models.JSONField(blank=True, default=list)),
                ('last_updated', models.DateTimeField(auto_now=True)),
                ('league', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='leaderboards', to='league.league')),
                ('season', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='leaderboards', to='league.season')),
            ],
            options={
                'unique_together': {('league', 'season')},
            },
        ),
    ]
