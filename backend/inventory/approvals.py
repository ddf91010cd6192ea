# backend/inventory/approvals.py
"""
Alur permintaan barang: PENDING -> APPROVED | REJECTED.

Persetujuan mengurangi stok semua baris dalam satu transaksi database.
Jika satu baris gagal, tidak ada batch yang berubah dan permintaan tetap
PENDING.
"""
import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.utils import timezone

from . import notifications
from .exceptions import InsufficientStock, InvalidState, ItemNotFound, RequestNotFound
from .fifo import actor_or_none, clean_quantity, deplete_stock
from .models import Item, Request, RequestItem

logger = logging.getLogger(__name__)


def _lock_request(request_id):
    request_id = getattr(request_id, 'pk', request_id)
    try:
        return Request.objects.select_for_update().get(pk=request_id)
    except (Request.DoesNotExist, ValueError, TypeError):
        raise RequestNotFound(f"Permintaan dengan ID {request_id} tidak ditemukan.") from None


def _ensure_pending(req, action):
    if req.status != Request.Status.PENDING:
        logger.warning("Request %s tidak bisa di-%s, status %s", req.pk, action, req.status)
        raise InvalidState(
            f"Permintaan {req.request_number} sudah berstatus {req.get_status_display()}, "
            f"tidak bisa di-{action}."
        )


def _resolve_grants(lines, grants):
    """Petakan id RequestItem -> jumlah disetujui. Baris tanpa grant = jumlah diminta."""
    resolved = {line.pk: line.quantity_requested for line in lines}
    if not grants:
        return resolved

    by_id = {line.pk: line for line in lines}
    errors = {}
    for line_id, granted in grants.items():
        try:
            line = by_id[int(line_id)]
        except (KeyError, TypeError, ValueError):
            errors[str(line_id)] = "Item tidak termasuk dalam permintaan ini."
            continue
        if isinstance(granted, bool) or not isinstance(granted, int):
            errors[str(line_id)] = "Jumlah disetujui harus bilangan bulat."
        elif granted < 0:
            errors[str(line_id)] = "Jumlah disetujui tidak boleh negatif."
        elif granted > line.quantity_requested:
            errors[str(line_id)] = (
                f"Jumlah disetujui untuk {line.item.name} ({granted}) "
                f"melebihi jumlah diminta ({line.quantity_requested})."
            )
        else:
            resolved[line.pk] = granted

    if errors:
        raise ValidationError(errors)
    return resolved


@transaction.atomic
def create_request(requester, items, notes='', meta=None, public=False):
    """
    Buat permintaan PENDING.

    items: iterable dict {'item': Item atau id, 'quantity_requested': int}.
    """
    items = list(items or [])
    if not items:
        raise ValidationError({'items': "Permintaan harus berisi minimal 1 barang."})

    quantities = {}
    for entry in items:
        item_id = getattr(entry['item'], 'pk', entry['item'])
        if item_id in quantities:
            raise ValidationError({'items': "Barang yang sama tidak boleh diminta dua kali dalam satu permintaan."})
        quantities[item_id] = clean_quantity(entry['quantity_requested'])

    found = Item.objects.in_bulk(list(quantities))
    missing = [str(item_id) for item_id in quantities if item_id not in found]
    if missing:
        raise ItemNotFound(f"Barang dengan ID {', '.join(missing)} tidak ditemukan.")

    req = Request.objects.create(requester=requester, notes=notes or '')
    RequestItem.objects.bulk_create([
        RequestItem(request=req, item=found[item_id], quantity_requested=quantity)
        for item_id, quantity in quantities.items()
    ])

    logger.info("Request %s dibuat oleh %s dengan %s barang", req.request_number, requester, len(quantities))
    notifications.schedule_request_created(req, meta=meta, public=public)
    return req


def _guest_requester(email, name, unit_kerja):
    """User peminta untuk request tanpa login. User baru dibuat tanpa password (tidak bisa login)."""
    User = get_user_model()
    user = User.objects.select_for_update().filter(email__iexact=email).first()
    if user is None:
        user = User.objects.create_user(
            email, None, first_name=name, last_name='', role=User.Role.UNIT_KERJA, unit_kerja=unit_kerja or None,
        )
        logger.info("User tamu %s dibuat dari request publik", user.email)
        return user

    if not user.is_active:
        raise ValidationError({'email': "Akun dengan email ini tidak aktif."})
    # Nama hanya diperbarui untuk akun tamu, bukan akun yang bisa login
    if not user.has_usable_password() and (user.first_name != name or user.unit_kerja != (unit_kerja or None)):
        user.first_name = name
        user.last_name = ''
        user.unit_kerja = unit_kerja or None
        user.save(update_fields=['first_name', 'last_name', 'unit_kerja'])
    return user


@transaction.atomic
def create_public_request(*, email, name, unit_kerja, items, notes='', meta=None):
    """Request dari form publik: cari/buat user berdasarkan email lalu buat request PENDING."""
    email = (email or '').strip()
    name = (name or '').strip()
    if not email or not name:
        raise ValidationError("Nama dan email harus diisi.")
    try:
        validate_email(email)
    except ValidationError:
        raise ValidationError({'email': "Format email tidak valid."}) from None

    requester = _guest_requester(email, name, unit_kerja)
    return create_request(requester, items, notes=notes, meta=meta, public=True)


@transaction.atomic
def approve_request(request_id, grants=None, *, approver=None, meta=None):
    """
    Setujui permintaan dan kurangi stok setiap baris secara FIFO.

    grants: dict {id RequestItem: jumlah disetujui}, 0 <= jumlah <= diminta.
    Raise RequestNotFound, InvalidState, ValidationError, InsufficientStock.
    """
    req = _lock_request(request_id)
    _ensure_pending(req, 'setujui')

    lines = list(req.items.select_related('item').order_by('id'))
    granted = _resolve_grants(lines, grants)

    # Kunci semua barang dengan urutan id yang sama untuk mencegah deadlock
    item_ids = sorted({line.item_id for line in lines})
    locked = {item.pk: item for item in Item.objects.select_for_update().filter(pk__in=item_ids).order_by('pk')}

    # Cek kecukupan semua baris sebelum ada batch yang diubah
    for line in lines:
        item = locked.get(line.item_id)
        if item is None:
            raise ItemNotFound(f"Barang dengan ID {line.item_id} tidak ditemukan.")
        if granted[line.pk] > item.total_stock:
            logger.warning(
                "Request %s tidak bisa disetujui: stok %s kurang (diminta %s, tersedia %s)",
                req.pk, item.pk, granted[line.pk], item.total_stock,
            )
            raise InsufficientStock(item, granted[line.pk], item.total_stock)

    actor = actor_or_none(approver)
    for line in lines:
        quantity = granted[line.pk]
        if quantity > 0:
            deplete_stock(line.item_id, quantity, user=actor, request=req)
        line.quantity_approved = quantity
    RequestItem.objects.bulk_update(lines, ['quantity_approved'])

    req.status = Request.Status.APPROVED
    req.decided_by = actor
    req.decided_at = timezone.now()
    req.save(update_fields=['status', 'decided_by', 'decided_at', 'updated_at'])

    logger.info("Request %s disetujui oleh %s", req.request_number, actor or 'sistem')
    notifications.schedule_request_decided(req, actor=actor, meta=meta)
    return req


@transaction.atomic
def reject_request(request_id, *, approver=None, reason='', meta=None):
    """Tolak permintaan. Tidak ada perubahan stok."""
    req = _lock_request(request_id)
    _ensure_pending(req, 'tolak')

    actor = actor_or_none(approver)
    req.status = Request.Status.REJECTED
    req.decided_by = actor
    req.decided_at = timezone.now()
    req.rejection_reason = reason or ''
    req.save(update_fields=['status', 'decided_by', 'decided_at', 'rejection_reason', 'updated_at'])

    logger.info("Request %s ditolak oleh %s", req.request_number, actor or 'sistem')
    notifications.schedule_request_decided(req, actor=actor, meta=meta)
    return req
