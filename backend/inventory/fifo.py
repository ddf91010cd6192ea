# backend/inventory/fifo.py
"""
Operasi ledger stok: pengurangan FIFO, penambahan stok, dan pengembalian.

Semua operasi berjalan di dalam transaction.atomic dan mengunci baris
Item (select_for_update) sebelum membaca total_stock atau batch, sehingga
operasi pada barang yang sama selalu berurutan. Item.total_stock hanya
diubah di modul ini.
"""
import datetime
import logging
from collections import namedtuple
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .exceptions import InsufficientStock, IntegrityFault, ItemNotFound
from .models import Item, StockBatch, Transaction

logger = logging.getLogger(__name__)

Allocation = namedtuple('Allocation', ['batch', 'quantity'])

DECIMAL_ZERO = Decimal('0.00')

# Batas kolom PositiveIntegerField dan DecimalField(max_digits=15, decimal_places=2)
MAX_QUANTITY = 2147483647
MAX_UNIT_PRICE = Decimal('9999999999999.99')


# --- Helper ---

def clean_quantity(quantity):
    try:
        value = int(quantity)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError({'quantity': "Jumlah harus berupa bilangan bulat."}) from None
    if isinstance(quantity, bool) or value != quantity or value <= 0:
        raise ValidationError({'quantity': "Jumlah harus bilangan bulat lebih dari 0."})
    if value > MAX_QUANTITY:
        raise ValidationError({'quantity': f"Jumlah maksimal {MAX_QUANTITY}."})
    return value


def clean_unit_price(unit_price):
    if unit_price is None or unit_price == '':
        return DECIMAL_ZERO
    try:
        value = Decimal(str(unit_price))
    except InvalidOperation:
        raise ValidationError({'unit_price': f"Harga satuan tidak valid: '{unit_price}'"}) from None
    if not value.is_finite() or value < 0:
        raise ValidationError({'unit_price': "Harga satuan tidak boleh negatif."})
    if value > MAX_UNIT_PRICE:
        raise ValidationError({'unit_price': f"Harga satuan maksimal {MAX_UNIT_PRICE}."})
    return value.quantize(Decimal('0.01'))


def _clean_entry_date(entry_date):
    if entry_date is None:
        return timezone.now()
    if not isinstance(entry_date, datetime.datetime):
        # date biasa -> awal hari tersebut
        entry_date = datetime.datetime.combine(entry_date, datetime.time.min)
    if timezone.is_naive(entry_date):
        entry_date = timezone.make_aware(entry_date)
    return entry_date


def actor_or_none(user):
    if user is not None and getattr(user, 'is_authenticated', False):
        return user
    return None


def lock_item(item_id):
    """Ambil Item dengan row lock. Harus dipanggil di dalam transaksi."""
    item_id = getattr(item_id, 'pk', item_id)
    try:
        return Item.objects.select_for_update().get(pk=item_id)
    except (Item.DoesNotExist, ValueError, TypeError):
        raise ItemNotFound(f"Barang dengan ID {item_id} tidak ditemukan.") from None


def fifo_batches(item):
    """Batch yang masih punya sisa, urut (entry_date, id), terkunci."""
    return (
        StockBatch.objects.select_for_update()
        .filter(item=item, remaining_quantity__gt=0)
        .order_by(*StockBatch.FIFO_ORDER)
    )


# --- Pengurangan stok FIFO ---

@transaction.atomic
def deplete_stock(item_id, quantity, *, user=None, request=None, notes=''):
    """
    Kurangi stok barang dari batch terlama lebih dulu.

    Raise InsufficientStock (tanpa perubahan apa pun) jika quantity melebihi
    total_stock. Jika jumlah sisa batch ternyata kurang dari total_stock,
    raise IntegrityFault; semua perubahan di-rollback.

    Returns list Allocation(batch, quantity) sesuai urutan konsumsi.
    """
    quantity = clean_quantity(quantity)
    item = lock_item(item_id)

    if quantity > item.total_stock:
        logger.warning(
            "Stok tidak cukup: item=%s diminta=%s tersedia=%s", item.pk, quantity, item.total_stock
        )
        raise InsufficientStock(item, quantity, item.total_stock)

    to_deplete = quantity
    allocations = []
    for batch in fifo_batches(item):
        if to_deplete <= 0:
            break
        take = min(batch.remaining_quantity, to_deplete)
        batch.remaining_quantity -= take
        batch.save(update_fields=['remaining_quantity'])
        allocations.append(Allocation(batch, take))
        to_deplete -= take

    if to_deplete > 0:
        logger.error(
            "Ledger tidak konsisten: item=%s total_stock=%s tetapi batch hanya berisi %s",
            item.pk, item.total_stock, quantity - to_deplete,
        )
        raise IntegrityFault(
            f"total_stock barang {item.pk} ({item.total_stock}) lebih besar dari sisa batch "
            f"({quantity - to_deplete})."
        )

    # Debit tunggal sebesar quantity; jumlah pengurangan batch = quantity
    item.total_stock -= quantity
    item.save(update_fields=['total_stock', 'updated_at'])

    actor = actor_or_none(user)
    note = notes or (f"Pengeluaran untuk {request}" if request is not None else "Pengeluaran stok")
    Transaction.objects.bulk_create([
        Transaction(
            item=item,
            batch=allocation.batch,
            quantity=-allocation.quantity,
            transaction_type=Transaction.Type.OUT,
            user=actor,
            related_request=request,
            notes=note,
        )
        for allocation in allocations
    ])

    logger.info(
        "Stok %s dikurangi %s dari %s batch, sisa %s",
        item.pk, quantity, len(allocations), item.total_stock,
    )
    return allocations


# --- Penambahan stok ---

@transaction.atomic
def add_stock(
    item_id,
    quantity,
    *,
    entry_date=None,
    unit_price=None,
    transaction_type=StockBatch.TransactionType.PEMBELIAN,
    notes='',
    expiry_date=None,
    user=None,
):
    """
    Buat batch baru dan tambahkan ke total_stock barang.

    Setiap panggilan menghasilkan batch sendiri, tidak pernah digabung
    dengan batch lain walaupun tanggal masuknya sama.
    """
    quantity = clean_quantity(quantity)
    unit_price = clean_unit_price(unit_price)
    entry_date = _clean_entry_date(entry_date)
    transaction_type = transaction_type or StockBatch.TransactionType.PEMBELIAN
    if transaction_type not in StockBatch.TransactionType.values:
        raise ValidationError({'transaction_type': f"Jenis transaksi tidak dikenal: {transaction_type}"})

    item = lock_item(item_id)
    actor = actor_or_none(user)

    batch = StockBatch.objects.create(
        item=item,
        quantity=quantity,
        remaining_quantity=quantity,
        unit_price=unit_price,
        entry_date=entry_date,
        transaction_type=transaction_type,
        expiry_date=expiry_date,
        notes=notes or '',
        added_by=actor,
    )
    Item.objects.filter(pk=item.pk).update(
        total_stock=F('total_stock') + quantity,
        updated_at=timezone.now(),
    )

    is_return = transaction_type == StockBatch.TransactionType.RETURN
    Transaction.objects.create(
        item=item,
        batch=batch,
        quantity=quantity,
        transaction_type=Transaction.Type.RETURN if is_return else Transaction.Type.IN,
        user=actor,
        notes=notes or f"Penerimaan batch #{batch.pk} ({batch.get_transaction_type_display()})",
    )

    logger.info(
        "Batch %s dibuat untuk item %s: %s @ %s (%s)",
        batch.pk, item.pk, quantity, unit_price, transaction_type,
    )
    return batch


def return_stock(item_id, quantity, *, notes='', user=None):
    """
    Pengembalian barang: batch baru bertanggal sekarang.

    Barang yang dikembalikan masuk ke antrian FIFO sebagai batch terbaru,
    bukan dikembalikan ke batch asalnya.
    """
    return add_stock(
        item_id,
        quantity,
        transaction_type=StockBatch.TransactionType.RETURN,
        notes=notes or "Pengembalian barang",
        user=user,
    )
