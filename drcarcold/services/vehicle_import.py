"""
Bulk import of vehicle refrigerant data.

Input rows use the flat import format:
    {"brand", "model", "info", "year", "refrigerant", "amount", "oil", "source"}

Brands are matched by name (created as `regular` when unknown); rows that
duplicate an existing brand/model/year/engine combination are skipped.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from django.db import transaction
from django.db.models import Count

from drcarcold.models import VehicleBrand, VehicleCategory, VehicleModel

logger = logging.getLogger(__name__)

BATCH_SIZE = 100


@dataclass
class ImportStats:
    total_attempted: int = 0
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    brands_created: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_attempted": self.total_attempted,
            "imported": self.imported,
            "skipped": self.skipped,
            "failed": self.failed,
            "brands_created": self.brands_created,
            "errors": self.errors,
        }


def _text(value, default: str = "") -> str:
    if value is None:
        return default
    return str(value).strip() or default


class VehicleImporter:
    def __init__(self):
        self._brands: Dict[str, VehicleBrand] = {
            brand.name: brand for brand in VehicleBrand.objects.all()
        }
        self.stats = ImportStats()

    def _get_brand(self, name: str) -> VehicleBrand:
        brand = self._brands.get(name)
        if brand is None:
            brand = VehicleBrand.objects.create(
                name=name, name_en=name, category=VehicleCategory.REGULAR
            )
            self._brands[name] = brand
            self.stats.brands_created += 1
        return brand

    def _build(self, row: Dict[str, Any]) -> VehicleModel:
        brand = self._get_brand(_text(row.get("brand"), "Unknown"))
        return VehicleModel(
            brand=brand,
            model_name=_text(row.get("model"), "Unknown"),
            engine_type=_text(row.get("info")),
            year=_text(row.get("year")),
            refrigerant_type=_text(row.get("refrigerant")),
            fill_amount=_text(row.get("amount")),
            oil_type=_text(row.get("oil")),
            data_source=_text(row.get("source"), "import"),
        )

    @staticmethod
    def _identity(vehicle: VehicleModel):
        return (vehicle.brand_id, vehicle.model_name, vehicle.year, vehicle.engine_type)

    def import_rows(self, rows: Iterable[Dict[str, Any]], clear_existing: bool = False) -> ImportStats:
        rows = list(rows)
        self.stats.total_attempted = len(rows)

        if clear_existing:
            deleted, _ = VehicleModel.objects.all().delete()
            logger.info(f"Cleared {deleted} existing vehicle records")

        existing = set(
            VehicleModel.objects.values_list("brand_id", "model_name", "year", "engine_type")
        )

        for start in range(0, len(rows), BATCH_SIZE):
            batch = rows[start:start + BATCH_SIZE]
            try:
                with transaction.atomic():
                    to_create = []
                    for row in batch:
                        if not isinstance(row, dict):
                            self.stats.failed += 1
                            continue
                        vehicle = self._build(row)
                        identity = self._identity(vehicle)
                        if identity in existing:
                            self.stats.skipped += 1
                            continue
                        existing.add(identity)
                        to_create.append(vehicle)
                    VehicleModel.objects.bulk_create(to_create)
                    self.stats.imported += len(to_create)
            except Exception as e:
                logger.error(f"Vehicle import batch {start}-{start + len(batch)} failed: {e}")
                self.stats.failed += len(batch)
                self.stats.errors.append(f"Batch {start}-{start + len(batch)}: {e}")

        logger.info(
            f"Vehicle import: {self.stats.imported} imported, {self.stats.skipped} skipped, "
            f"{self.stats.failed} failed"
        )
        return self.stats


def import_vehicles(rows: Iterable[Dict[str, Any]], clear_existing: bool = False) -> ImportStats:
    return VehicleImporter().import_rows(rows, clear_existing=clear_existing)


def get_vehicle_stats() -> Dict[str, Any]:
    """Totals and top brands/refrigerants/sources of the vehicle table."""
    brand_stats = list(
        VehicleModel.objects.values("brand__name")
        .annotate(count=Count("id"))
        .order_by("-count")
    )
    refrigerant_stats = list(
        VehicleModel.objects.exclude(refrigerant_type="")
        .values("refrigerant_type")
        .annotate(count=Count("id"))
        .order_by("-count")
    )
    source_stats = list(
        VehicleModel.objects.values("data_source").annotate(count=Count("id")).order_by("-count")
    )
    return {
        "total_vehicles": VehicleModel.objects.count(),
        "total_brands": VehicleBrand.objects.count(),
        "top_brands": [
            {"brand": row["brand__name"], "count": row["count"]} for row in brand_stats[:15]
        ],
        "refrigerant_types": [
            {"type": row["refrigerant_type"], "count": row["count"]} for row in refrigerant_stats
        ],
        "sources": [
            {"source": row["data_source"], "count": row["count"]} for row in source_stats
        ],
    }
