from io import StringIO

from django.core.management import call_command
from django.test import TestCase


class MigrationStateTests(TestCase):

    def test_models_match_migrations(self):
        out = StringIO()
        try:
            call_command('makemigrations', 'league', '--check', '--dry-run', stdout=out)
        except SystemExit:
            self.fail(f"Model changes without a migration:\n{out.getvalue()}")
