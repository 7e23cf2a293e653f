"""
Management command to import refrigerant data from a JSON file.

The file holds a list of rows (or {"data": [...]}) in the same shape the
/api/vehicles/import/ endpoint accepts.

Usage:
    python manage.py import_vehicles /path/to/vehicles.json
    python manage.py import_vehicles /path/to/vehicles.json --clear
"""

import json

from django.core.management.base import BaseCommand, CommandError

from drcarcold.services.vehicle_import import import_vehicles


class Command(BaseCommand):
    help = "Import vehicle refrigerant data from a JSON file"

    def add_arguments(self, parser):
        parser.add_argument("json_file", type=str, help="Path to JSON file with vehicle rows")
        parser.add_argument(
            "--clear",
            action="store_true",
            help="Delete all vehicle models before importing",
        )

    def handle(self, *args, **options):
        json_file = options["json_file"]

        try:
            with open(json_file, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CommandError(f"Could not read {json_file}: {e}")

        rows = payload.get("data") if isinstance(payload, dict) else payload
        if not isinstance(rows, list):
            raise CommandError("Expected a JSON list of vehicle rows")

        self.stdout.write(f"Found {len(rows)} rows in {json_file}")
        if options["clear"]:
            self.stdout.write(self.style.WARNING("Clearing existing vehicle data"))

        stats = import_vehicles(rows, clear_existing=options["clear"]).to_dict()

        for key, value in stats.items():
            if key == "errors":
                continue
            self.stdout.write(f"  {key}: {value}")
        for error in stats.get("errors", [])[:20]:
            self.stdout.write(self.style.ERROR(f"  {error}"))

        self.stdout.write(self.style.SUCCESS("Import finished"))
