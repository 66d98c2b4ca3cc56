from django.apps import AppConfig


class LeagueConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'league'
    verbose_name = 'Fantasy League'

    def ready(self):
        from league.processing.completion import handle_round_completed
        from league.signals import round_completed

        round_completed.connect(handle_round_completed, dispatch_uid='league.round_completed')
