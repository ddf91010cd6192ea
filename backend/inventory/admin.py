# backend/inventory/admin.py
from django.contrib import admin, messages
from django.core.exceptions import ValidationError

from . import approvals
from .exceptions import IntegrityFault, InventoryError
from .models import ActivityLog, Category, Item, Request, RequestItem, StockBatch, Transaction


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ('name',)
    search_fields = ('name',)


class StockBatchInline(admin.TabularInline):
    model = StockBatch
    fields = ('entry_date', 'transaction_type', 'quantity', 'remaining_quantity', 'unit_price', 'expiry_date', 'notes')
    readonly_fields = fields
    ordering = StockBatch.FIFO_ORDER
    extra = 0
    can_delete = False
    show_change_link = True

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'unit_of_measure', 'total_stock', 'minimum_stock', 'is_low_stock')
    search_fields = ('name', 'barcode')
    list_filter = ('category',)
    # total_stock hanya berubah lewat batch, request, dan return
    readonly_fields = ('total_stock', 'created_at', 'updated_at')
    fields = ('name', 'category', 'unit_of_measure', 'barcode', 'minimum_stock', 'total_stock', 'created_at', 'updated_at')
    inlines = [StockBatchInline]

    @admin.display(boolean=True, description='Stok menipis')
    def is_low_stock(self, obj):
        return obj.is_low_stock


@admin.register(StockBatch)
class StockBatchAdmin(admin.ModelAdmin):
    """Batch hanya bisa dilihat; penambahan stok lewat API atau import."""
    list_display = ('id', 'item', 'entry_date', 'transaction_type', 'quantity', 'remaining_quantity', 'unit_price', 'added_by')
    search_fields = ('item__name', 'notes')
    list_filter = ('transaction_type', 'entry_date')
    date_hierarchy = 'entry_date'
    ordering = ('item', 'entry_date', 'id')
    raw_id_fields = ('item', 'added_by')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class RequestItemInline(admin.TabularInline):
    model = RequestItem
    fields = ('item', 'quantity_requested', 'quantity_approved')
    readonly_fields = fields
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Request)
class RequestAdmin(admin.ModelAdmin):
    list_display = ('request_number', 'requester', 'status', 'created_at', 'decided_by', 'decided_at')
    search_fields = ('request_number', 'requester__email', 'requester__first_name')
    list_filter = ('status', 'created_at')
    readonly_fields = ('request_number', 'requester', 'status', 'decided_by', 'decided_at', 'rejection_reason', 'created_at', 'updated_at')
    fields = ('request_number', 'requester', 'status', 'notes', 'decided_by', 'decided_at', 'rejection_reason', 'created_at', 'updated_at')
    inlines = [RequestItemInline]
    actions = ['approve_selected', 'reject_selected']

    def has_add_permission(self, request):
        return False

    @admin.action(description='Setujui permintaan terpilih (jumlah penuh)')
    def approve_selected(self, request, queryset):
        self._decide(request, queryset, approvals.approve_request, 'disetujui')

    @admin.action(description='Tolak permintaan terpilih')
    def reject_selected(self, request, queryset):
        self._decide(request, queryset, approvals.reject_request, 'ditolak')

    def _decide(self, request, queryset, operation, label):
        done = 0
        for req in queryset.order_by('pk'):
            try:
                operation(req.pk, approver=request.user)
                done += 1
            except (InventoryError, ValidationError) as e:
                # Detail IntegrityFault hanya untuk log, bukan untuk layar admin
                message = IntegrityFault.public_message if isinstance(e, IntegrityFault) else e
                self.message_user(request, f"{req}: {message}", level=messages.ERROR)
        if done:
            self.message_user(request, f"{done} permintaan {label}.", level=messages.SUCCESS)


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ('timestamp', 'item', 'transaction_type', 'quantity', 'batch', 'user', 'related_request')
    search_fields = ('item__name', 'notes', 'related_request__request_number')
    list_filter = ('transaction_type', 'timestamp')
    date_hierarchy = 'timestamp'
    raw_id_fields = ('item', 'batch', 'user', 'related_request')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'user', 'action', 'entity', 'entity_id', 'ip_address')
    search_fields = ('description', 'user__email')
    list_filter = ('action', 'entity')
    readonly_fields = ('user', 'action', 'entity', 'entity_id', 'description', 'ip_address', 'user_agent', 'created_at')

    def has_add_permission(self, request):
        return False
