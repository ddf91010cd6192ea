# backend/inventory/management/commands/import_pembelian.py

from pathlib import Path
from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from inventory.importers import import_pembelian

class Command(BaseCommand):
    help = 'Imports purchase rows (SAKTI format, .xlsx or ;-separated .csv) as new stock batches'

    def add_arguments(self, parser):
        parser.add_argument('filepath', type=str, help='The full path to the Excel/CSV file')
        parser.add_argument('--tahun', type=int, default=None, help='Tahun pembukuan (default: tahun berjalan)')

    def handle(self, *args, **options):
        filepath = Path(options['filepath'])
        if not filepath.is_file():
            raise CommandError(f"File not found at path: {filepath}")
        tahun = options['tahun'] or timezone.localdate().year

        self.stdout.write(f"Starting import from {filepath} (tahun {tahun})...")
        try:
            with open(filepath, mode='rb') as upload:
                result = import_pembelian(upload, tahun)
        except ValidationError as e:
            raise CommandError("; ".join(e.messages))

        for detail in result['details']:
            line = f"Baris {detail['row']}: {detail['nama']} - {detail['message']}"
            if detail['status'] == 'success':
                self.stdout.write(line)
            else:
                self.stderr.write(self.style.WARNING(line))

        self.stdout.write(self.style.SUCCESS(f"Import finished. Processed {result['total']} rows."))
        self.stdout.write(self.style.SUCCESS(
            f"{result['success']} berhasil, {result['failed']} gagal, {result['new_items']} barang baru dibuat."
        ))
