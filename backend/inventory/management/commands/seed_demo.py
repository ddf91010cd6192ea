# backend/inventory/management/commands/seed_demo.py

import datetime
from decimal import Decimal
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone
from inventory.fifo import add_stock
from inventory.models import Category, Item, StockBatch

User = get_user_model()

CATEGORIES = ['ATK', 'Elektronik', 'Cleaning Supply']

USERS = [
    # email, password, first_name, last_name, role, unit_kerja
    ('admin@hanadap.com', 'admin123', 'Administrator', '', User.Role.ADMIN, None),
    ('it@hanadap.com', 'user123', 'Staff', 'IT', User.Role.UNIT_KERJA, 'IT'),
    ('hrd@hanadap.com', 'user123', 'Staff', 'HRD', User.Role.UNIT_KERJA, 'HRD'),
]

ITEMS = [
    # nama, satuan, stok minimum, kategori, batch [(tanggal masuk, jumlah, harga satuan)]
    ('Kertas A4', 'rim', 20, 'ATK', [(datetime.date(2024, 1, 1), 50, '55000'), (datetime.date(2024, 1, 15), 30, '57500')]),
    ('Pulpen', 'pcs', 50, 'ATK', [(datetime.date(2024, 2, 1), 120, '3500')]),
    ('Tinta Printer', 'botol', 5, 'Elektronik', [(datetime.date(2024, 3, 1), 12, '85000')]),
]

class Command(BaseCommand):
    help = 'Seeds demo users, categories, items and opening stock batches (idempotent)'

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding database...")

        categories = {}
        for name in CATEGORIES:
            categories[name], _ = Category.objects.get_or_create(name=name)
        self.stdout.write(f"Kategori: {', '.join(categories)}")

        admin = None
        for email, password, first_name, last_name, role, unit_kerja in USERS:
            user = User.objects.filter(email=email).first()
            if user is None:
                if role == User.Role.ADMIN:
                    user = User.objects.create_superuser(email, password, first_name=first_name, last_name=last_name)
                else:
                    user = User.objects.create_user(
                        email, password, first_name=first_name, last_name=last_name, role=role, unit_kerja=unit_kerja,
                    )
                self.stdout.write(f"Created user: {email}")
            if role == User.Role.ADMIN:
                admin = user

        for name, unit, minimum, category, batches in ITEMS:
            item, created = Item.objects.get_or_create(
                name=name,
                defaults={'unit_of_measure': unit, 'minimum_stock': minimum, 'category': categories[category]},
            )
            if not created:
                continue
            for entry_date, quantity, price in batches:
                add_stock(
                    item.pk, quantity,
                    entry_date=timezone.make_aware(datetime.datetime.combine(entry_date, datetime.time.min)),
                    unit_price=Decimal(price),
                    transaction_type=StockBatch.TransactionType.SALDO_AWAL,
                    notes="Saldo awal (data demo)",
                    user=admin,
                )
            self.stdout.write(f"Created barang: {name} ({sum(b[1] for b in batches)} {unit})")

        self.stdout.write(self.style.SUCCESS("Seeding selesai."))
