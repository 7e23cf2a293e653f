"""
Management command to seed the base site data.

Creates the admin user, the product categories, a handful of demo products,
the company record and the default runtime settings. Existing rows are kept.

Usage:
    python manage.py seed_site_data
    python manage.py seed_site_data --dry-run   # Preview without changes

The admin credentials come from ADMIN_EMAIL / ADMIN_PASSWORD.
"""

import os
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from drcarcold.models import Category, CompanyInfo, Product, Setting
from drcarcold.services.settings_store import DEFAULT_SETTINGS

CATEGORIES = [
    {
        "name": "1700F冷氣系統保養機",
        "name_en": "1700F AC System Maintenance Machine",
        "slug": "ac-maintenance-machine",
        "description": "專業級冷氣系統保養維修設備",
        "image": "/images/categories/ac-machine.jpg",
    },
    {
        "name": "巨化 JH R-134A 環保冷媒",
        "name_en": "JH R-134A Eco-Friendly Refrigerant",
        "slug": "r134a-refrigerant",
        "description": "高品質環保汽車冷媒",
        "image": "/images/categories/refrigerant.jpg",
    },
    {
        "name": "快速接頭",
        "name_en": "Quick Couplers",
        "slug": "quick-couplers",
        "description": "各式快速接頭與轉接頭",
        "image": "/images/categories/couplers.jpg",
    },
    {
        "name": "冷凍機油 / 其他油品",
        "name_en": "Refrigeration Oil / Other Oils",
        "slug": "oils",
        "description": "專業冷凍機油與相關油品",
        "image": "/images/categories/oils.jpg",
    },
    {
        "name": "工具 / 耗品零件",
        "name_en": "Tools / Consumables",
        "slug": "tools-consumables",
        "description": "維修工具與耗材零件",
        "image": "/images/categories/tools.jpg",
    },
    {
        "name": "冷媒管 / 錶組",
        "name_en": "Refrigerant Hoses / Gauge Sets",
        "slug": "hoses-gauges",
        "description": "冷媒管路與壓力錶組",
        "image": "/images/categories/gauges.jpg",
    },
    {
        "name": "其他相關輔助工具",
        "name_en": "Other Auxiliary Tools",
        "slug": "auxiliary-tools",
        "description": "其他專業輔助工具",
        "image": "/images/categories/auxiliary.jpg",
    },
]

# (category slug, product fields)
PRODUCTS = [
    ("ac-maintenance-machine", {
        "name": "1700F 冷媒回收充填機",
        "slug": "refrigerant-recovery-machine-1700f",
        "description": "專業汽車冷媒回收充填機，適用於各種車型的冷媒系統保養",
        "price": Decimal("88000"),
        "stock": 5,
        "is_featured": True,
        "features": ["自動回收", "精準充填", "真空測試", "電子秤計量"],
        "specifications": {
            "型號": "1700F",
            "適用冷媒": "R134a / R1234yf",
            "回收速度": "200g/min",
            "充填精度": "±5g",
            "電源": "110V/220V",
        },
    }),
    ("r134a-refrigerant", {
        "name": "巨化 R-134a 汽車冷媒 13.6kg",
        "slug": "jh-r134a-refrigerant-13kg",
        "description": "高品質汽車專用環保冷媒，純度99.9%以上",
        "price": Decimal("2800"),
        "stock": 50,
        "is_featured": True,
        "features": ["純度99.9%", "環保認證", "原廠品質", "附安全閥"],
        "specifications": {
            "品牌": "巨化 JH",
            "型號": "R-134a",
            "容量": "13.6kg",
            "純度": "99.9%",
            "包裝": "鋼瓶",
        },
    }),
    ("quick-couplers", {
        "name": "快速接頭組 (高低壓)",
        "slug": "quick-coupler-set",
        "description": "汽車冷媒系統專用快速接頭，高低壓一組",
        "price": Decimal("650"),
        "stock": 100,
        "features": ["防漏設計", "耐高壓", "快速連接", "通用規格"],
        "specifications": {"材質": "黃銅", "規格": "R134a標準", "耐壓": "600PSI", "組合": "高壓+低壓"},
    }),
    ("oils", {
        "name": "PAG 46 冷凍油 250ml",
        "slug": "pag-46-oil-250ml",
        "description": "汽車冷媒系統專用冷凍油，適用於R134a/R1234yf系統",
        "price": Decimal("380"),
        "stock": 80,
        "features": ["高潤滑性", "防腐蝕", "相容性佳", "原廠規格"],
        "specifications": {"類型": "PAG 46", "容量": "250ml", "適用": "R134a/R1234yf", "黏度": "ISO 46"},
    }),
]


class Command(BaseCommand):
    help = "Seed admin user, categories, demo products, company info and default settings"

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be seeded without making changes",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN - No changes will be made"))

        with transaction.atomic():
            self._seed_admin(dry_run)
            categories = self._seed_categories(dry_run)
            self._seed_products(categories, dry_run)
            self._seed_company_info(dry_run)
            self._seed_settings(dry_run)

        self.stdout.write(self.style.SUCCESS("Site data seeded"))

    def _seed_admin(self, dry_run):
        User = get_user_model()
        email = os.getenv("ADMIN_EMAIL", "admin@drcarcold.com")
        password = os.getenv("ADMIN_PASSWORD", "admin123")

        if User.objects.filter(email__iexact=email).exists():
            self.stdout.write(f"  Admin user {email} exists")
            return
        if dry_run:
            self.stdout.write(f"  Would create admin user {email}")
            return
        User.objects.create_superuser(username=email, email=email, password=password, first_name="系統管理員")
        self.stdout.write(self.style.SUCCESS(f"  Created admin user {email}"))

    def _seed_categories(self, dry_run):
        categories = {}
        for order, data in enumerate(CATEGORIES):
            existing = Category.objects.filter(slug=data["slug"]).first()
            if existing:
                categories[data["slug"]] = existing
                continue
            if dry_run:
                self.stdout.write(f"  Would create category {data['name']}")
                continue
            categories[data["slug"]] = Category.objects.create(order=order, **data)
            self.stdout.write(f"  Created category {data['name']}")
        return categories

    def _seed_products(self, categories, dry_run):
        for category_slug, data in PRODUCTS:
            if Product.objects.filter(slug=data["slug"]).exists():
                continue
            if dry_run or category_slug not in categories:
                self.stdout.write(f"  Would create product {data['name']}")
                continue
            Product.objects.create(category=categories[category_slug], **data)
            self.stdout.write(f"  Created product {data['name']}")

    def _seed_company_info(self, dry_run):
        if CompanyInfo.objects.exists():
            return
        if dry_run:
            self.stdout.write("  Would create company info")
            return
        CompanyInfo.load()
        self.stdout.write("  Created company info")

    def _seed_settings(self, dry_run):
        existing = set(Setting.objects.filter(key__in=DEFAULT_SETTINGS).values_list("key", flat=True))
        missing = {k: v for k, v in DEFAULT_SETTINGS.items() if k not in existing}
        if not missing:
            return
        if dry_run:
            self.stdout.write(f"  Would create {len(missing)} settings")
            return
        Setting.objects.bulk_create([Setting(key=k, value=v) for k, v in missing.items()])
        self.stdout.write(f"  Created {len(missing)} settings")
