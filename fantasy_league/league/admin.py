from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    User, Team, Driver, Season, Race, Session, DriverResult, TeamResult,
    League, RaceSelection, UsedSelection, RoundModifier, PointsUpdateLog,
    LeagueLeaderboard,
)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    pass


@admin.register(Season)
class SeasonAdmin(admin.ModelAdmin):
    list_display = ['year', 'name', 'is_active', 'driver_count', 'team_count']
    list_filter = ['is_active', 'year']
    search_fields = ['year', 'name']
    filter_horizontal = ['drivers', 'teams']

    def driver_count(self, obj):
        return obj.drivers.count()
    driver_count.short_description = 'Drivers'

    def team_count(self, obj):
        return obj.teams.count()
    team_count.short_description = 'Teams'


@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ['name', 'short_name', 'created_at']
    search_fields = ['name', 'short_name']


@admin.register(Driver)
class DriverAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'abbreviation', 'driver_number', 'current_team']
    search_fields = ['full_name', 'first_name', 'last_name', 'abbreviation']
    list_filter = ['current_team']


class SessionInline(admin.TabularInline):
    model = Session
    extra = 0
    fields = ['session_number', 'session_type', 'session_date_utc']


@admin.register(Race)
class RaceAdmin(admin.ModelAdmin):
    list_display = ['name', 'season', 'round_number', 'status', 'is_sprint_weekend', 'qualifying_start', 'race_start']
    list_filter = ['season', 'status', 'is_sprint_weekend']
    search_fields = ['name', 'circuit', 'country']
    ordering = ['season', 'round_number']
    readonly_fields = ['status', 'results_updated_at', 'created_at', 'updated_at']
    inlines = [SessionInline]

    fieldsets = (
        ('Event', {
            'fields': ('season', 'name', 'round_number', 'circuit', 'country', 'is_sprint_weekend')
        }),
        ('Timing (UTC)', {
            'fields': ('qualifying_start', 'sprint_qualifying_start', 'sprint_start', 'race_start')
        }),
        ('Status', {
            'fields': ('status', 'results_updated_at', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(DriverResult)
class DriverResultAdmin(admin.ModelAdmin):
    list_display = ['race', 'session_type', 'position', 'driver_name', 'team_name', 'points', 'status_label']
    list_filter = ['race__season', 'session_type', 'race']
    search_fields = ['driver_name', 'team_name']


@admin.register(TeamResult)
class TeamResultAdmin(admin.ModelAdmin):
    list_display = ['race', 'position', 'team_name', 'race_points', 'sprint_points', 'total_points']
    list_filter = ['race__season', 'race']
    search_fields = ['team_name']


@admin.register(League)
class LeagueAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'season', 'owner', 'season_status', 'member_count']
    list_filter = ['season', 'season_status']
    search_fields = ['name', 'code', 'owner__username']
    filter_horizontal = ['members']

    def member_count(self, obj):
        return obj.members.count()
    member_count.short_description = 'Members'


@admin.register(RaceSelection)
class RaceSelectionAdmin(admin.ModelAdmin):
    list_display = ['user', 'league', 'round', 'main_driver', 'reserve_driver', 'team', 'points', 'status']
    list_filter = ['league', 'status', 'round']
    search_fields = ['user__username', 'main_driver', 'reserve_driver', 'team']
    readonly_fields = ['point_breakdown', 'assigned_at', 'created_at', 'updated_at']

    def save_model(self, request, obj, form, change):
        previous_points = form.initial.get('points', 0) if change else 0
        super().save_model(request, obj, form, change)

        if change and 'points' in form.changed_data:
            PointsUpdateLog.objects.create(
                round=obj.round,
                race_name=obj.race.name if obj.race else '',
                user=obj.user,
                league=obj.league,
                selection=obj,
                previous_points=previous_points or 0,
                points=obj.points,
                point_breakdown=obj.point_breakdown,
                update_reason=PointsUpdateLog.REASON_ADMIN_UPDATE,
            )


@admin.register(UsedSelection)
class UsedSelectionAdmin(admin.ModelAdmin):
    list_display = ['user', 'league', 'driver_cycle_count', 'team_cycle_count', 'updated_at']
    list_filter = ['league']
    search_fields = ['user__username']

    def driver_cycle_count(self, obj):
        return len(obj.driver_cycles or [])
    driver_cycle_count.short_description = 'Driver cycles'

    def team_cycle_count(self, obj):
        return len(obj.team_cycles or [])
    team_cycle_count.short_description = 'Team cycles'


@admin.register(RoundModifier)
class RoundModifierAdmin(admin.ModelAdmin):
    list_display = ['user', 'league', 'round', 'target', 'effect_type', 'effect_value', 'condition', 'target_name', 'target_user']
    list_filter = ['league', 'effect_type', 'target']


@admin.register(PointsUpdateLog)
class PointsUpdateLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'user', 'league', 'round', 'race_name', 'previous_points', 'points', 'update_reason']
    list_filter = ['league', 'update_reason']
    search_fields = ['user__username', 'race_name']
    readonly_fields = [f.name for f in PointsUpdateLog._meta.fields]


@admin.register(LeagueLeaderboard)
class LeagueLeaderboardAdmin(admin.ModelAdmin):
    list_display = ['league', 'season', 'last_updated']
    list_filter = ['season']
    readonly_fields = ['driver_standings', 'constructor_standings', 'last_updated']
