# backend/inventory/exceptions.py
"""
Error taxonomy untuk ledger stok.

InsufficientStock, ItemNotFound, RequestNotFound dan InvalidState adalah
kesalahan bisnis/pemanggil: pesannya aman ditampilkan ke pengguna.
IntegrityFault berarti invariant ledger rusak: detailnya hanya masuk log,
klien menerima pesan umum.
"""
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class InventoryError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'inventory_error'

    def __init__(self, message=None):
        self.message = message or self.__class__.__doc__ or self.default_code
        super().__init__(self.message)


class InsufficientStock(InventoryError):
    """Stok tidak mencukupi."""
    status_code = status.HTTP_409_CONFLICT
    default_code = 'insufficient_stock'

    def __init__(self, item=None, requested=None, available=None, message=None):
        self.item = item
        self.requested = requested
        self.available = available
        if message is None and item is not None:
            message = (
                f"Stok tidak cukup untuk {getattr(item, 'name', item)}: "
                f"diminta {requested}, tersedia {available}."
            )
        super().__init__(message)


class ItemNotFound(InventoryError):
    """Barang tidak ditemukan."""
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'item_not_found'


class RequestNotFound(InventoryError):
    """Permintaan tidak ditemukan."""
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'request_not_found'


class InvalidState(InventoryError):
    """Status permintaan tidak mengizinkan aksi ini."""
    status_code = status.HTTP_409_CONFLICT
    default_code = 'invalid_state'


class IntegrityFault(InventoryError):
    """Terjadi kesalahan internal pada data stok. Hubungi administrator."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = 'integrity_fault'

    public_message = "Terjadi kesalahan internal pada data stok. Hubungi administrator."


def api_exception_handler(exc, context):
    """Exception handler DRF: memetakan InventoryError ke response JSON."""
    if isinstance(exc, IntegrityFault):
        view = context.get('view')
        logger.error("Integrity fault di %s: %s", type(view).__name__ if view else '?', exc.message)
        return Response(
            {"error": IntegrityFault.public_message, "code": exc.default_code},
            status=exc.status_code,
        )

    if isinstance(exc, InventoryError):
        return Response({"error": exc.message, "code": exc.default_code}, status=exc.status_code)

    # ValidationError dari layer service (django.core) diperlakukan seperti milik DRF
    if isinstance(exc, DjangoValidationError):
        detail = exc.message_dict if hasattr(exc, 'error_dict') else exc.messages
        exc = DRFValidationError(detail=detail)

    return exception_handler(exc, context)
