# backend/inventory/management/commands/check_stock.py

from django.core.management.base import BaseCommand, CommandError
from inventory.reports import stock_discrepancies

class Command(BaseCommand):
    help = 'Reports items whose total_stock differs from the sum of their batch remaining quantities (never modifies data)'

    def handle(self, *args, **options):
        mismatched = list(stock_discrepancies())
        if not mismatched:
            self.stdout.write(self.style.SUCCESS("Semua stok konsisten."))
            return

        for item in mismatched:
            self.stderr.write(self.style.ERROR(
                f"[{item.pk}] {item.name}: total_stock={item.total_stock}, jumlah sisa batch={item.batch_total}"
            ))
        raise CommandError(f"{len(mismatched)} barang tidak konsisten.")
