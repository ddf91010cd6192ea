# backend/inventory/importers.py
"""
Import pembelian dari file Excel/CSV (format SAKTI).

Setiap baris valid menjadi satu batch baru lewat fifo.add_stock. Barang yang
belum ada dibuat otomatis (pencocokan nama tidak peka huruf besar/kecil).
Baris yang tidak valid dilewati dan dilaporkan, baris lain tetap diproses.
"""
import datetime
import logging
from decimal import Decimal, InvalidOperation

import pandas as pd
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Font

from .exceptions import InventoryError
from .fifo import MAX_QUANTITY, MAX_UNIT_PRICE, add_stock
from .models import Item, StockBatch

logger = logging.getLogger(__name__)

BULAN_MAP = {
    'januari': 1,
    'februari': 2,
    'maret': 3,
    'april': 4,
    'mei': 5,
    'juni': 6,
    'juli': 7,
    'agustus': 8,
    'september': 9,
    'oktober': 10,
    'november': 11,
    'desember': 12,
}

# Nama kolom format SAKTI diikuti alias pendek
COLUMNS = {
    'bulan': ('Bulan Pembukuan di SAKTI', 'bulan'),
    'jenis': ('Jenis Transaksi', 'jenisTransaksi'),
    'nama': ('Nama Barang', 'nama'),
    'jumlah': ('Jumlah Barang', 'jumlah'),
    'harga': ('Harga Satuan', 'hargaSatuan'),
    'satuan': ('satuan',),
    'keterangan': ('keterangan',),
}

TEMPLATE_HEADERS = [
    'Bulan Pembukuan di SAKTI', 'Jenis Transaksi', 'Nama Barang',
    'Jumlah Barang', 'Harga Satuan', 'Total Nilai',
]
TEMPLATE_ROWS = [
    ['Februari', 'Pembelian', 'Kertas HVS F4 70 gram', 5, 60000, 300000],
    ['Mei', 'Pembelian', 'Pulpen Gel Benefit', 24, 10000, 240000],
]
TEMPLATE_WIDTHS = [25, 15, 40, 15, 15, 15]

MAX_ERRORS_SHOWN = 10


def parse_bulan_pembukuan(bulan, tahun=None):
    """'Februari' -> tanggal 1 Februari pada tahun tersebut (aware). None jika tidak dikenal."""
    month = BULAN_MAP.get(str(bulan or '').strip().lower())
    if not month:
        return None
    year = int(tahun) if tahun else timezone.localdate().year
    return timezone.make_aware(datetime.datetime(year, month, 1))


def parse_nilai(nilai):
    """
    Ubah nilai sel ke Decimal. Titik dianggap pemisah ribuan, koma pemisah desimal.

    "60.000" -> 60000, "1.500,50" -> 1500.50. Nilai kosong/tidak valid -> 0.
    """
    if nilai is None:
        return Decimal('0')
    if isinstance(nilai, (int, float, Decimal)) and not isinstance(nilai, bool):
        if pd.isna(nilai):
            return Decimal('0')
        return Decimal(str(nilai))
    cleaned = str(nilai).strip().replace('.', '').replace(',', '.')
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return Decimal('0')
    return value if value.is_finite() else Decimal('0')


def jenis_transaksi_from_text(text):
    jenis = str(text or '').strip().lower()
    if 'hibah' in jenis:
        return StockBatch.TransactionType.HIBAH
    if 'transfer' in jenis:
        return StockBatch.TransactionType.TRANSFER_MASUK
    if 'saldo' in jenis or 'awal' in jenis:
        return StockBatch.TransactionType.SALDO_AWAL
    if 'koreksi' in jenis:
        return StockBatch.TransactionType.KOREKSI_TAMBAH
    return StockBatch.TransactionType.PEMBELIAN


def read_rows(file):
    """Baca file Excel (atau CSV dengan separator ';') menjadi DataFrame."""
    try:
        df = pd.read_excel(file, engine='openpyxl', dtype=object)
    except Exception:
        try:
            file.seek(0)
            df = pd.read_csv(file, sep=';', dtype=str)
        except Exception as e_csv:
            raise ValidationError(
                f"Gagal membaca file. Pastikan format Excel (.xlsx) atau CSV (separator ';') valid. Detail: {e_csv}"
            ) from e_csv
    df.columns = [str(col).strip() for col in df.columns]
    return df.astype(object).where(df.notna(), None)


def _cell(row, field):
    for column in COLUMNS[field]:
        value = row.get(column)
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        return value
    return None


def _find_or_create_item(name, unit):
    item = Item.objects.filter(name__iexact=name).order_by('pk').first()
    if item is not None:
        return item, False
    return Item.objects.create(name=name, unit_of_measure=unit or 'pcs'), True


def import_pembelian(file, tahun=None, user=None):
    """
    Proses file import pembelian.

    Returns dict ringkasan: {'total', 'success', 'failed', 'new_items',
    'details': [{'row', 'nama', 'status', 'message'}], 'errors': [...]}.
    Raise ValidationError jika file tidak bisa dibaca atau kosong.
    """
    if tahun in (None, ''):
        tahun = timezone.localdate().year
    try:
        tahun = int(tahun)
    except (TypeError, ValueError):
        raise ValidationError({'tahun': f"Tahun tidak valid: '{tahun}'"}) from None

    df = read_rows(file)
    if df.empty:
        raise ValidationError("File kosong atau format tidak valid.")

    result = {'total': len(df), 'success': 0, 'failed': 0, 'new_items': 0, 'details': [], 'errors': []}

    def fail(row_num, name, message):
        result['failed'] += 1
        result['errors'].append(f"Baris {row_num}: {message}")
        result['details'].append({'row': row_num, 'nama': name or '(kosong)', 'status': 'error', 'message': message})

    for index, row in enumerate(df.to_dict('records')):
        row_num = index + 2  # baris 1 adalah header
        name = str(_cell(row, 'nama') or '').strip()
        if not name:
            fail(row_num, name, "Nama barang kosong")
            continue

        quantity = parse_nilai(_cell(row, 'jumlah'))
        unit_price = parse_nilai(_cell(row, 'harga'))
        if quantity <= 0:
            fail(row_num, name, "Jumlah harus lebih dari 0")
            continue
        if quantity != quantity.to_integral_value():
            fail(row_num, name, "Jumlah harus bilangan bulat")
            continue
        if quantity > MAX_QUANTITY:
            fail(row_num, name, f"Jumlah melebihi batas maksimal {MAX_QUANTITY}")
            continue
        if unit_price <= 0:
            fail(row_num, name, "Harga satuan harus lebih dari 0")
            continue
        if unit_price > MAX_UNIT_PRICE:
            fail(row_num, name, f"Harga satuan melebihi batas maksimal {MAX_UNIT_PRICE}")
            continue

        bulan = _cell(row, 'bulan')
        entry_date = parse_bulan_pembukuan(bulan, tahun) if bulan else None
        transaction_type = jenis_transaksi_from_text(_cell(row, 'jenis'))
        unit = str(_cell(row, 'satuan') or 'pcs').strip()
        notes = str(_cell(row, 'keterangan') or '').strip()

        try:
            with transaction.atomic():
                item, created = _find_or_create_item(name, unit)
                add_stock(
                    item.pk,
                    int(quantity),
                    entry_date=entry_date,
                    unit_price=unit_price,
                    transaction_type=transaction_type,
                    notes=notes,
                    user=user,
                )
        except (ValidationError, InventoryError, DatabaseError, ArithmeticError) as e:
            logger.warning("Import pembelian baris %s gagal: %s", row_num, e)
            fail(row_num, name, str(e))
            continue

        if created:
            result['new_items'] += 1
        result['success'] += 1
        result['details'].append({
            'row': row_num,
            'nama': name,
            'status': 'success',
            'message': "Berhasil (barang baru dibuat)" if created else "Berhasil",
        })

    result['errors'] = result['errors'][:MAX_ERRORS_SHOWN]
    logger.info(
        "Import pembelian selesai: %s berhasil, %s gagal, %s barang baru",
        result['success'], result['failed'], result['new_items'],
    )
    return result


def build_template_workbook():
    """Workbook contoh untuk format import pembelian."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Template Import"
    ws.append(TEMPLATE_HEADERS)
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in TEMPLATE_ROWS:
        ws.append(row)
    for idx, width in enumerate(TEMPLATE_WIDTHS):
        ws.column_dimensions[chr(ord('A') + idx)].width = width
    return wb
