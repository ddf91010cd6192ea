# backend/inventory/models.py

from decimal import Decimal

from django.db import models
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


# --- MODEL KATEGORI ---
class Category(models.Model):
    name = models.CharField(_('nama kategori'), max_length=100, unique=True)

    class Meta:
        verbose_name = _('Kategori')
        verbose_name_plural = _('Kategori')
        ordering = ['name']

    def __str__(self):
        return self.name


# --- MODEL BARANG ---
class Item(models.Model):
    """
    Satu jenis barang (SKU).

    total_stock adalah cache dari jumlah remaining_quantity semua batch milik
    barang ini. Nilainya hanya diubah oleh operasi di inventory.fifo, di dalam
    transaksi yang sama dengan penulisan batch.
    """
    name = models.CharField(_('nama barang'), max_length=200, db_index=True)
    unit_of_measure = models.CharField(_('satuan'), max_length=20, default='pcs', help_text="Contoh: pcs, rim, box, unit")
    category = models.ForeignKey(Category, related_name='items', null=True, blank=True, on_delete=models.SET_NULL, verbose_name=_('kategori'))
    barcode = models.CharField(_('kode scan'), max_length=64, unique=True, null=True, blank=True)
    total_stock = models.PositiveIntegerField(_('stok total'), default=0, editable=False)
    minimum_stock = models.PositiveIntegerField(_('stok minimum'), default=10)
    created_at = models.DateTimeField(_('dibuat tanggal'), auto_now_add=True)
    updated_at = models.DateTimeField(_('diperbarui tanggal'), auto_now=True)

    class Meta:
        verbose_name = _('Barang')
        verbose_name_plural = _('Barang')
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.total_stock} {self.unit_of_measure})"

    @property
    def is_low_stock(self):
        return self.total_stock <= self.minimum_stock

    @property
    def is_out_of_stock(self):
        return self.total_stock <= 0


# --- MODEL BATCH STOK ---
class StockBatch(models.Model):
    """Satu lot penerimaan barang. Urutan FIFO: (entry_date, id)."""

    class TransactionType(models.TextChoices):
        PEMBELIAN = 'PEMBELIAN', _('Pembelian')
        HIBAH = 'HIBAH', _('Hibah')
        TRANSFER_MASUK = 'TRANSFER_MASUK', _('Transfer Masuk')
        SALDO_AWAL = 'SALDO_AWAL', _('Saldo Awal')
        KOREKSI_TAMBAH = 'KOREKSI_TAMBAH', _('Koreksi Tambah')
        RETURN = 'RETURN', _('Pengembalian')

    FIFO_ORDER = ('entry_date', 'id')

    item = models.ForeignKey(Item, related_name='batches', on_delete=models.CASCADE, verbose_name=_('barang'))
    quantity = models.PositiveIntegerField(_('jumlah'), validators=[MinValueValidator(1)])
    remaining_quantity = models.PositiveIntegerField(_('sisa jumlah'))
    unit_price = models.DecimalField(_('harga satuan'), max_digits=15, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0'))])
    entry_date = models.DateTimeField(_('tanggal masuk'), default=timezone.now)
    transaction_type = models.CharField(_('jenis transaksi'), max_length=20, choices=TransactionType.choices, default=TransactionType.PEMBELIAN)
    expiry_date = models.DateField(_('tanggal kadaluarsa'), blank=True, null=True)
    notes = models.TextField(_('keterangan'), blank=True, default='')
    added_by = models.ForeignKey(settings.AUTH_USER_MODEL, related_name='added_batches', null=True, blank=True, on_delete=models.SET_NULL, verbose_name=_('ditambahkan oleh'))
    created_at = models.DateTimeField(_('dibuat tanggal'), auto_now_add=True)

    class Meta:
        verbose_name = _('Batch Stok')
        verbose_name_plural = _('Batch Stok')
        ordering = ['entry_date', 'id']
        indexes = [
            models.Index(fields=['item', 'entry_date', 'id'], name='stockbatch_fifo_idx'),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gt=0), name='stockbatch_quantity_positive'),
            models.CheckConstraint(condition=models.Q(remaining_quantity__gte=0), name='stockbatch_remaining_non_negative'),
            models.CheckConstraint(condition=models.Q(remaining_quantity__lte=models.F('quantity')), name='stockbatch_remaining_lte_quantity'),
            models.CheckConstraint(condition=models.Q(unit_price__gte=0), name='stockbatch_unit_price_non_negative'),
        ]

    def __str__(self):
        unit = getattr(getattr(self, 'item', None), 'unit_of_measure', 'unit')
        return f"{self.item.name} ({self.remaining_quantity}/{self.quantity} {unit}) - Masuk: {self.entry_date:%Y-%m-%d}"

    @property
    def remaining_value(self):
        return self.remaining_quantity * self.unit_price


# --- MODEL REQUEST ---
class Request(models.Model):
    class Status(models.TextChoices):
        PENDING = 'PENDING', _('Menunggu Persetujuan')
        APPROVED = 'APPROVED', _('Disetujui')
        REJECTED = 'REJECTED', _('Ditolak')

    TERMINAL_STATUSES = (Status.APPROVED, Status.REJECTED)

    requester = models.ForeignKey(settings.AUTH_USER_MODEL, related_name='requests_made', on_delete=models.PROTECT, verbose_name=_('peminta'))
    request_number = models.CharField(_('nomor permintaan'), max_length=50, unique=True, blank=True, null=True, editable=False)
    status = models.CharField(_('status'), max_length=20, choices=Status.choices, default=Status.PENDING)
    notes = models.TextField(_('catatan'), blank=True, default='')
    decided_by = models.ForeignKey(settings.AUTH_USER_MODEL, related_name='requests_decided', null=True, blank=True, on_delete=models.SET_NULL, verbose_name=_('diputuskan oleh'))
    decided_at = models.DateTimeField(_('tanggal keputusan'), null=True, blank=True)
    rejection_reason = models.TextField(_('alasan penolakan'), blank=True, default='')
    created_at = models.DateTimeField(_('dibuat tanggal'), auto_now_add=True)
    updated_at = models.DateTimeField(_('diperbarui tanggal'), auto_now=True)

    class Meta:
        verbose_name = _('Permintaan Barang')
        verbose_name_plural = _('Permintaan Barang')
        ordering = ['-created_at', '-id']

    def __str__(self):
        requester_display = getattr(self.requester, 'email', self.requester_id)
        return self.request_number or f"Request by {requester_display}"

    def save(self, *args, **kwargs):
        super().save(*args, **kwargs)
        # Nomor diturunkan dari pk, jadi tidak bisa bentrok antar request konkuren
        if not self.request_number:
            self.request_number = self._generate_request_number()
            Request.objects.filter(pk=self.pk).update(request_number=self.request_number)

    def _generate_request_number(self):
        year = (self.created_at or timezone.now()).year
        return f"REQ/{year}/{self.pk:05d}"

    @property
    def is_pending(self):
        return self.status == self.Status.PENDING


# --- MODEL ITEM PERMINTAAN ---
class RequestItem(models.Model):
    request = models.ForeignKey(Request, related_name='items', on_delete=models.CASCADE, verbose_name=_('permintaan'))
    item = models.ForeignKey(Item, related_name='requested_in', on_delete=models.PROTECT, verbose_name=_('barang'))
    quantity_requested = models.PositiveIntegerField(_('jumlah diminta'), validators=[MinValueValidator(1)])
    quantity_approved = models.PositiveIntegerField(_('jumlah disetujui'), default=0)

    class Meta:
        verbose_name = _('Item Permintaan')
        verbose_name_plural = _('Item Permintaan')
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['request', 'item'], name='requestitem_unique_item_per_request'),
            models.CheckConstraint(condition=models.Q(quantity_requested__gt=0), name='requestitem_requested_positive'),
            models.CheckConstraint(condition=models.Q(quantity_approved__lte=models.F('quantity_requested')), name='requestitem_approved_lte_requested'),
        ]

    def __str__(self):
        item_name = getattr(self.item, 'name', 'N/A')
        return f"{item_name} - Diminta: {self.quantity_requested}"

    def clean(self):
        if self.quantity_approved > self.quantity_requested:
            raise ValidationError(_('Jumlah disetujui tidak boleh melebihi jumlah yang diminta.'))


# --- MODEL TRANSAKSI STOK ---
class Transaction(models.Model):
    """Log pergerakan stok per batch. Baris OUT menyimpan asal batch untuk setiap pengeluaran."""

    class Type(models.TextChoices):
        IN = 'IN', _('Masuk')
        OUT = 'OUT', _('Keluar')
        RETURN = 'RETURN', _('Pengembalian')

    item = models.ForeignKey(Item, related_name='transactions', on_delete=models.CASCADE, verbose_name=_('barang'))
    batch = models.ForeignKey(StockBatch, related_name='transactions', null=True, blank=True, on_delete=models.SET_NULL, verbose_name=_('batch terkait'))
    quantity = models.IntegerField(_('jumlah'), help_text="Positif untuk IN/RETURN, negatif untuk OUT")
    transaction_type = models.CharField(_('tipe transaksi'), max_length=10, choices=Type.choices)
    timestamp = models.DateTimeField(_('waktu transaksi'), default=timezone.now)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, verbose_name=_('pengguna'))
    related_request = models.ForeignKey(Request, related_name='transactions', null=True, blank=True, on_delete=models.SET_NULL, verbose_name=_('permintaan terkait'))
    notes = models.TextField(_('catatan'), blank=True, default='')

    class Meta:
        verbose_name = _('Transaksi Stok')
        verbose_name_plural = _('Transaksi Stok')
        ordering = ['-timestamp', '-id']

    def __str__(self):
        direction = "+" if self.quantity > 0 else ""
        item_name = getattr(getattr(self, 'item', None), 'name', 'N/A')
        return f"{self.timestamp:%Y-%m-%d %H:%M} - {item_name}: {direction}{self.quantity} ({self.transaction_type})"


# --- MODEL LOG AKTIVITAS ---
class ActivityLog(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, verbose_name=_('pengguna'))
    action = models.CharField(_('aksi'), max_length=30)
    entity = models.CharField(_('entitas'), max_length=30)
    entity_id = models.CharField(_('id entitas'), max_length=64, blank=True, default='')
    description = models.TextField(_('deskripsi'))
    ip_address = models.GenericIPAddressField(_('alamat IP'), null=True, blank=True)
    user_agent = models.CharField(_('user agent'), max_length=255, blank=True, default='')
    created_at = models.DateTimeField(_('waktu'), auto_now_add=True)

    class Meta:
        verbose_name = _('Log Aktivitas')
        verbose_name_plural = _('Log Aktivitas')
        ordering = ['-created_at', '-id']

    def __str__(self):
        user_display = getattr(self.user, 'email', 'System')
        return f"{self.action} {self.entity} by {user_display}"
