# backend/inventory/serializers.py
from decimal import Decimal

from rest_framework import serializers
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .fifo import MAX_QUANTITY
from .models import ActivityLog, Category, Item, Request, RequestItem, StockBatch, Transaction
from users.serializers import BasicUserSerializer


# --- Serializer Kategori & Barang ---
class CategorySerializer(serializers.ModelSerializer):
    class Meta: model = Category; fields = ('id', 'name')


class ItemSerializer(serializers.ModelSerializer):
    """total_stock hanya bisa dibaca; perubahannya lewat batch, request, dan return."""
    category_name = serializers.CharField(source='category.name', read_only=True, allow_null=True, default=None)
    is_low_stock = serializers.BooleanField(read_only=True)
    is_out_of_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Item
        fields = (
            'id', 'name', 'unit_of_measure', 'category', 'category_name', 'barcode',
            'total_stock', 'minimum_stock', 'is_low_stock', 'is_out_of_stock',
            'created_at', 'updated_at',
        )
        read_only_fields = ('total_stock', 'created_at', 'updated_at')


class BasicItemSerializer(serializers.ModelSerializer):
    class Meta: model = Item; fields = ('id', 'name', 'unit_of_measure', 'total_stock'); read_only_fields = fields


# --- Serializer Batch Stok ---
class StockBatchSerializer(serializers.ModelSerializer):
    item = BasicItemSerializer(read_only=True)
    added_by = BasicUserSerializer(read_only=True)
    transaction_type_display = serializers.CharField(source='get_transaction_type_display', read_only=True)
    remaining_value = serializers.DecimalField(max_digits=19, decimal_places=2, read_only=True)

    class Meta:
        model = StockBatch
        fields = (
            'id', 'item', 'quantity', 'remaining_quantity', 'unit_price', 'remaining_value',
            'entry_date', 'transaction_type', 'transaction_type_display', 'expiry_date',
            'notes', 'added_by', 'created_at',
        )
        read_only_fields = fields


class StockBatchCreateSerializer(serializers.Serializer):
    """Input penambahan stok (barang masuk) oleh admin."""
    item = serializers.PrimaryKeyRelatedField(queryset=Item.objects.all())
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_QUANTITY)
    unit_price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal('0'), required=False, default=Decimal('0'))
    entry_date = serializers.DateTimeField(required=False, allow_null=True, default=None)
    transaction_type = serializers.ChoiceField(
        choices=[choice for choice in StockBatch.TransactionType.choices if choice[0] != StockBatch.TransactionType.RETURN],
        required=False,
        default=StockBatch.TransactionType.PEMBELIAN,
    )
    expiry_date = serializers.DateField(required=False, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ReturnSerializer(serializers.Serializer):
    item = serializers.PrimaryKeyRelatedField(queryset=Item.objects.all())
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_QUANTITY)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


# --- Serializer Permintaan ---
class RequestItemSerializer(serializers.ModelSerializer):
    item = BasicItemSerializer(read_only=True)
    item_id = serializers.PrimaryKeyRelatedField(queryset=Item.objects.all(), source='item', write_only=True)

    class Meta:
        model = RequestItem
        fields = ('id', 'item', 'item_id', 'quantity_requested', 'quantity_approved')
        read_only_fields = ('quantity_approved',)

    def validate_quantity_requested(self, value):
        if value <= 0:
            raise serializers.ValidationError(_("Jumlah diminta harus lebih dari 0."))
        if value > MAX_QUANTITY:
            raise serializers.ValidationError(_("Jumlah diminta terlalu besar."))
        return value


class RequestListSerializer(serializers.ModelSerializer):
    requester = BasicUserSerializer(read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    item_count = serializers.IntegerField(source='items.count', read_only=True)
    class Meta: model = Request; fields = ('id', 'request_number', 'requester', 'status', 'status_display', 'item_count', 'created_at', 'decided_at'); read_only_fields = fields


class RequestDetailSerializer(serializers.ModelSerializer):
    requester = BasicUserSerializer(read_only=True)
    decided_by = BasicUserSerializer(read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    items = RequestItemSerializer(many=True, read_only=True)

    class Meta:
        model = Request
        fields = (
            'id', 'request_number', 'requester', 'status', 'status_display', 'notes',
            'items', 'decided_by', 'decided_at', 'rejection_reason', 'created_at', 'updated_at',
        )
        read_only_fields = fields


class RequestCreateSerializer(serializers.Serializer):
    items = RequestItemSerializer(many=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError(_("Permintaan harus berisi minimal 1 barang."))
        item_ids = [entry['item'].pk for entry in value]
        if len(item_ids) != len(set(item_ids)):
            raise serializers.ValidationError(_("Barang yang sama tidak boleh diminta dua kali."))
        return value


class PublicRequestSerializer(serializers.Serializer):
    """Input form permintaan tanpa login."""
    name = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    unit_kerja = serializers.CharField(max_length=20)
    items = RequestItemSerializer(many=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_items(self, value):
        return RequestCreateSerializer().validate_items(value)


class RequestTrackingSerializer(serializers.ModelSerializer):
    """Data permintaan untuk halaman tracking publik (tanpa data admin)."""
    requester_name = serializers.StringRelatedField(source='requester', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    items = RequestItemSerializer(many=True, read_only=True)

    class Meta:
        model = Request
        fields = (
            'id', 'request_number', 'requester_name', 'status', 'status_display', 'notes',
            'items', 'decided_at', 'rejection_reason', 'created_at',
        )
        read_only_fields = fields


class ApprovalLineSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    quantity_approved = serializers.IntegerField(min_value=0)


class RequestApproveSerializer(serializers.Serializer):
    """Body approve: {"items": [{"id": <RequestItem id>, "quantity_approved": n}]}. Boleh kosong."""
    items = ApprovalLineSerializer(many=True, required=False)

    def to_grants(self):
        return {line['id']: line['quantity_approved'] for line in self.validated_data.get('items', [])}


class RequestRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


# --- Serializer Log & Transaksi ---
class TransactionSerializer(serializers.ModelSerializer):
    item = BasicItemSerializer(read_only=True)
    user = BasicUserSerializer(read_only=True)
    batch_info = serializers.StringRelatedField(source='batch', read_only=True)
    transaction_type_display = serializers.CharField(source='get_transaction_type_display', read_only=True)
    related_request_number = serializers.CharField(source='related_request.request_number', read_only=True, allow_null=True, default=None)

    class Meta:
        model = Transaction
        fields = (
            'id', 'timestamp', 'item', 'quantity', 'transaction_type', 'transaction_type_display',
            'user', 'batch', 'batch_info', 'related_request', 'related_request_number', 'notes',
        )
        read_only_fields = fields


class ActivityLogSerializer(serializers.ModelSerializer):
    user = BasicUserSerializer(read_only=True)
    class Meta: model = ActivityLog; fields = ('id', 'user', 'action', 'entity', 'entity_id', 'description', 'ip_address', 'user_agent', 'created_at'); read_only_fields = fields


# --- Serializer Laporan ---
class FIFOReportSerializer(serializers.Serializer):
    item = ItemSerializer(read_only=True)
    batches = StockBatchSerializer(many=True, read_only=True)
    total_quantity = serializers.IntegerField(read_only=True)
    total_remaining = serializers.IntegerField(read_only=True)
    total_value = serializers.DecimalField(max_digits=19, decimal_places=2, read_only=True)


# --- Serializer Upload Import Pembelian ---
class ImportPembelianUploadSerializer(serializers.Serializer):
    file = serializers.FileField(required=True, help_text="File Excel (.xlsx) atau CSV (.csv, separator ';') berisi data pembelian.")
    tahun = serializers.IntegerField(required=False, min_value=2000, max_value=2100, help_text="Tahun pembukuan, default tahun berjalan.")

    def validate(self, attrs):
        attrs.setdefault('tahun', timezone.localdate().year)
        return attrs
