import json

from django.core.management.base import BaseCommand, CommandError
from django.core.serializers.json import DjangoJSONEncoder

from habits.diagnostics import StorageDiagnostics
from habits.exceptions import InitializationFailure
from habits.repository import HabitRepository


class Command(BaseCommand):
    help = "Print every habit and record in the habit store as JSON."

    def add_arguments(self, parser):
        parser.add_argument("--backend", choices=["auto", "relational", "keyvalue"], default=None)
        parser.add_argument("--sql", help="Run a raw SQL query instead (relational backend only).")

    def handle(self, *args, **options):
        repository = HabitRepository.from_settings(options["backend"])
        try:
            repository.open()
        except InitializationFailure as exc:
            raise CommandError(str(exc)) from exc

        diagnostics = StorageDiagnostics(repository.backend)
        try:
            if options["sql"]:
                payload = diagnostics.run_query(options["sql"])
            else:
                payload = diagnostics.snapshot()
        finally:
            repository.close()
        self.stdout.write(json.dumps(payload, cls=DjangoJSONEncoder, indent=2))
