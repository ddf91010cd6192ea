# backend/inventory/reports.py
"""Laporan stok: kartu stok FIFO, barang stok menipis, dan pengecekan konsistensi."""
import re
from decimal import Decimal

from django.db.models import F, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Font

from .exceptions import ItemNotFound
from .models import Item, Request, StockBatch

EXPORT_HEADERS = [
    'No', 'Tanggal Masuk', 'Jenis Transaksi', 'Jumlah Awal',
    'Sisa Stok', 'Harga Satuan', 'Total Nilai', 'Keterangan',
]
EXPORT_WIDTHS = [5, 15, 18, 12, 10, 15, 18, 25]


def get_item(item_id):
    try:
        return Item.objects.get(pk=item_id)
    except (Item.DoesNotExist, ValueError, TypeError):
        raise ItemNotFound(f"Barang dengan ID {item_id} tidak ditemukan.") from None


def fifo_report(item):
    """
    Kartu stok FIFO untuk satu barang: semua batch urut (entry_date, id)
    beserta total jumlah awal, sisa, dan nilai sisa.
    """
    batches = list(item.batches.order_by(*StockBatch.FIFO_ORDER))
    total_value = sum((batch.remaining_value for batch in batches), Decimal('0.00'))
    return {
        'item': item,
        'batches': batches,
        'total_quantity': sum(batch.quantity for batch in batches),
        'total_remaining': sum(batch.remaining_quantity for batch in batches),
        'total_value': total_value,
    }


def export_fifo_workbook(item):
    report = fifo_report(item)

    wb = Workbook()
    ws = wb.active
    ws.title = "Kartu Stok FIFO"

    ws.append(["KARTU STOK BARANG (METODE FIFO)"])
    ws['A1'].font = Font(bold=True, size=14)
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(EXPORT_HEADERS))
    ws.append([])
    ws.append(["Nama Barang:", item.name])
    ws.append(["Satuan:", item.unit_of_measure])
    ws.append(["Tanggal Cetak:", timezone.localdate().strftime('%d/%m/%Y')])
    ws.append([])

    ws.append(EXPORT_HEADERS)
    for cell in ws[ws.max_row]:
        cell.font = Font(bold=True)

    for idx, batch in enumerate(report['batches'], start=1):
        ws.append([
            idx,
            timezone.localtime(batch.entry_date).strftime('%d/%m/%Y'),
            batch.get_transaction_type_display(),
            batch.quantity,
            batch.remaining_quantity,
            float(batch.unit_price),
            float(batch.remaining_value),
            batch.notes or '',
        ])

    ws.append([])
    ws.append([
        'TOTAL', '', '', report['total_quantity'], report['total_remaining'],
        '-', float(report['total_value']), '',
    ])
    for cell in ws[ws.max_row]:
        cell.font = Font(bold=True)

    for idx, width in enumerate(EXPORT_WIDTHS):
        ws.column_dimensions[chr(ord('A') + idx)].width = width
    return wb


def export_filename(item):
    clean_name = re.sub(r'\s+', '_', re.sub(r'[^a-zA-Z0-9\s]', '', item.name)).strip('_')
    return f"Kartu_Stok_FIFO_{clean_name or item.pk}.xlsx"


def low_stock_items():
    return Item.objects.filter(total_stock__lte=F('minimum_stock')).select_related('category').order_by('total_stock', 'name')


def stock_discrepancies():
    """Barang yang total_stock-nya tidak sama dengan jumlah sisa batch. Hanya melapor."""
    return (
        Item.objects.annotate(batch_total=Coalesce(Sum('batches__remaining_quantity'), Value(0)))
        .exclude(total_stock=F('batch_total'))
        .order_by('pk')
    )


def dashboard_summary(recent=5):
    """Angka ringkas untuk dashboard admin."""
    requests = Request.objects.all()
    return {
        'total_items': Item.objects.count(),
        'total_stock': Item.objects.aggregate(total=Coalesce(Sum('total_stock'), Value(0)))['total'],
        'low_stock_items': Item.objects.filter(total_stock__lte=F('minimum_stock')).count(),
        'pending_requests': requests.filter(status=Request.Status.PENDING).count(),
        'approved_requests': requests.filter(status=Request.Status.APPROVED).count(),
        'rejected_requests': requests.filter(status=Request.Status.REJECTED).count(),
        'recent_requests': list(requests.select_related('requester').order_by('-created_at', '-id')[:recent]),
    }
