# backend/inventory/notifications.py
"""
Efek samping yang bersifat best-effort: log aktivitas dan email.

Semua dijadwalkan lewat transaction.on_commit sehingga hanya berjalan
setelah perubahan ledger tersimpan, dan kegagalannya tidak pernah
membatalkan operasi inti.
"""
import logging
from functools import partial

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.db import transaction
from django.db.models import F, Q
from django.template.loader import render_to_string

from .models import ActivityLog, Item, Request

logger = logging.getLogger(__name__)


def log_activity(*, action, entity, description, user=None, entity_id='', ip_address=None, user_agent=''):
    """Catat satu baris ActivityLog. Kegagalan hanya di-log."""
    if user is not None and not getattr(user, 'is_authenticated', False):
        user = None
    try:
        # Savepoint sendiri: error di sini tidak merusak transaksi pemanggil
        with transaction.atomic():
            return ActivityLog.objects.create(
                user=user,
                action=action,
                entity=entity,
                entity_id=str(entity_id or ''),
                description=description,
                ip_address=ip_address or None,
                user_agent=(user_agent or '')[:255],
            )
    except Exception:
        logger.exception("Gagal mencatat aktivitas %s %s %s", action, entity, entity_id)
        return None


def send_email(*, to, subject, template_name, context):
    """Kirim email teks. Mengembalikan False jika gagal atau tanpa penerima."""
    recipients = [address for address in to if address]
    if not recipients:
        return False
    context = {'app_name': settings.APP_NAME, **context}
    try:
        body = render_to_string(template_name, context)
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, recipients)
    except Exception:
        logger.exception("[Email] Gagal mengirim '%s' ke %s", subject, ", ".join(recipients))
        return False
    logger.info("[Email] Terkirim ke %s: %s", ", ".join(recipients), subject)
    return True


def _admin_emails():
    User = get_user_model()
    admins = User.objects.filter(is_active=True).filter(Q(role=User.Role.ADMIN) | Q(is_superuser=True))
    return list(admins.exclude(email='').values_list('email', flat=True))


def _line_summary(request_obj, approved=False):
    lines = []
    for line in request_obj.items.all():
        quantity = line.quantity_approved if approved else line.quantity_requested
        lines.append(f"{line.item.name} ({quantity} {line.item.unit_of_measure})")
    return lines


# --- Callback setelah commit ---

def request_created(request_id, meta=None, public=False):
    request_obj = Request.objects.select_related('requester').prefetch_related('items__item').get(pk=request_id)
    lines = _line_summary(request_obj)
    if public:
        requester = request_obj.requester
        description = f"Request publik dari {requester} ({requester.email}): {', '.join(lines)}"
    else:
        description = f"Membuat request baru {request_obj.request_number}: {', '.join(lines)}"
    log_activity(
        action='CREATE',
        entity='REQUEST',
        entity_id=request_obj.pk,
        user=request_obj.requester,
        description=description,
        **(meta or {}),
    )
    send_email(
        to=_admin_emails(),
        subject=f"Permintaan Barang Baru - {settings.APP_NAME}",
        template_name='inventory/email/new_request.txt',
        context={'request': request_obj, 'requester_name': str(request_obj.requester), 'lines': lines},
    )


def request_decided(request_id, actor=None, meta=None):
    request_obj = Request.objects.select_related('requester').prefetch_related('items__item').get(pk=request_id)
    approved = request_obj.status == Request.Status.APPROVED
    lines = _line_summary(request_obj, approved=approved)
    actor_name = str(actor) if actor is not None else 'sistem'

    log_activity(
        action='APPROVE' if approved else 'REJECT',
        entity='REQUEST',
        entity_id=request_obj.pk,
        user=actor,
        description=(
            f"Request {request_obj.request_number} {'disetujui' if approved else 'ditolak'} "
            f"oleh {actor_name}: {', '.join(lines)}"
        ),
        **(meta or {}),
    )

    requester = request_obj.requester
    context = {
        'request': request_obj,
        'name': requester.get_full_name() or 'Pengguna',
        'lines': lines,
        'reason': request_obj.rejection_reason or 'Tidak tersedia',
    }
    if approved:
        send_email(
            to=[requester.email],
            subject=f"Permintaan Barang Disetujui - {settings.APP_NAME}",
            template_name='inventory/email/request_approved.txt',
            context=context,
        )
        low_stock_alert(request_obj.items.values_list('item_id', flat=True))
    else:
        send_email(
            to=[requester.email],
            subject=f"Permintaan Barang Ditolak - {settings.APP_NAME}",
            template_name='inventory/email/request_rejected.txt',
            context=context,
        )


def low_stock_alert(item_ids):
    """Kirim peringatan ke admin untuk barang yang stoknya <= stok minimum."""
    items = list(
        Item.objects.filter(pk__in=list(item_ids), total_stock__lte=F('minimum_stock')).order_by('name')
    )
    if not items:
        return False
    return send_email(
        to=_admin_emails(),
        subject=f"Peringatan Stok Menipis - {settings.APP_NAME}",
        template_name='inventory/email/low_stock_alert.txt',
        context={'items': items},
    )


# --- Penjadwalan ---

def _on_commit(func, *args, **kwargs):
    transaction.on_commit(partial(func, *args, **kwargs), robust=True)


def schedule_activity(**kwargs):
    _on_commit(log_activity, **kwargs)


def schedule_request_created(request_obj, meta=None, public=False):
    _on_commit(request_created, request_obj.pk, meta=meta, public=public)


def schedule_request_decided(request_obj, actor=None, meta=None):
    _on_commit(request_decided, request_obj.pk, actor=actor, meta=meta)
