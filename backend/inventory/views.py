# backend/inventory/views.py
import logging

from rest_framework import viewsets, mixins, status, permissions
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView
from django.db.models import F, ProtectedError
from django.http import HttpResponse

from . import approvals, fifo, importers, notifications, reports
from .models import ActivityLog, Category, Item, Request, StockBatch, Transaction
from .serializers import (
    CategorySerializer, ItemSerializer, StockBatchSerializer, StockBatchCreateSerializer, ReturnSerializer,
    RequestListSerializer, RequestDetailSerializer, RequestCreateSerializer,
    RequestApproveSerializer, RequestRejectSerializer, PublicRequestSerializer, RequestTrackingSerializer,
    TransactionSerializer, ActivityLogSerializer, FIFOReportSerializer,
    ImportPembelianUploadSerializer,
)
from .exceptions import RequestNotFound
from .permissions import IsAdminUser, IsAdminOrReadOnly, IsOwnerOfRequest

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def client_meta(request):
    """IP dan user agent untuk log aktivitas."""
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    ip_address = forwarded.split(',')[0].strip() if forwarded else request.META.get('REMOTE_ADDR')
    return {'ip_address': ip_address or None, 'user_agent': request.META.get('HTTP_USER_AGENT', '')}


def xlsx_response(workbook, filename):
    response = HttpResponse(content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    workbook.save(response)
    return response


# --- Views Barang & Stok ---

class CategoryViewSet(viewsets.ModelViewSet):
    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    permission_classes = [IsAdminOrReadOnly]


class ItemViewSet(viewsets.ModelViewSet):
    """Master barang. Semua user bisa melihat, hanya Admin yang bisa mengubah."""
    queryset = Item.objects.select_related('category').all()
    serializer_class = ItemSerializer
    permission_classes = [IsAdminOrReadOnly]

    def get_queryset(self):
        queryset = super().get_queryset()
        search = self.request.query_params.get('search')
        if search:
            queryset = queryset.filter(name__icontains=search)
        category_id = self.request.query_params.get('category')
        if category_id and category_id.isdigit():
            queryset = queryset.filter(category_id=category_id)
        if self.request.query_params.get('low_stock') in ('1', 'true', 'True'):
            queryset = queryset.filter(total_stock__lte=F('minimum_stock'))
        return queryset

    def perform_create(self, serializer):
        item = serializer.save()
        notifications.schedule_activity(
            action='CREATE', entity='BARANG', entity_id=item.pk, user=self.request.user,
            description=f"Menambahkan barang baru: {item.name}", **client_meta(self.request),
        )

    def perform_update(self, serializer):
        item = serializer.save()
        notifications.schedule_activity(
            action='UPDATE', entity='BARANG', entity_id=item.pk, user=self.request.user,
            description=f"Mengubah data barang: {item.name}", **client_meta(self.request),
        )

    def destroy(self, request, *args, **kwargs):
        item = self.get_object()
        item_id, name = item.pk, item.name
        try:
            item.delete()
        except ProtectedError:
            return Response(
                {"error": f"Barang {name} sudah dipakai dalam permintaan dan tidak bisa dihapus.", "code": "protected"},
                status=status.HTTP_409_CONFLICT,
            )
        notifications.schedule_activity(
            action='DELETE', entity='BARANG', entity_id=item_id, user=request.user,
            description=f"Menghapus barang: {name}", **client_meta(request),
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['get'])
    def batches(self, request, pk=None):
        """Batch milik barang ini dalam urutan FIFO."""
        item = self.get_object()
        queryset = item.batches.select_related('item', 'added_by').order_by(*StockBatch.FIFO_ORDER)
        if request.query_params.get('available') in ('1', 'true', 'True'):
            queryset = queryset.filter(remaining_quantity__gt=0)
        return Response(StockBatchSerializer(queryset, many=True).data)


class StockBatchViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, mixins.CreateModelMixin, viewsets.GenericViewSet):
    """Daftar batch stok dan penambahan stok (barang masuk)."""
    queryset = StockBatch.objects.select_related('item', 'added_by').order_by('item_id', *StockBatch.FIFO_ORDER)
    serializer_class = StockBatchSerializer

    def get_permissions(self):
        if self.action == 'create': self.permission_classes = [IsAdminUser]
        else: self.permission_classes = [permissions.IsAuthenticated]
        return super().get_permissions()

    def get_queryset(self):
        queryset = super().get_queryset()
        item_id = self.request.query_params.get('item')
        if item_id:
            queryset = queryset.filter(item_id=item_id)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = StockBatchCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        item = data.pop('item')
        quantity = data.pop('quantity')
        batch = fifo.add_stock(item.pk, quantity, user=request.user, **data)
        notifications.schedule_activity(
            action='CREATE', entity='STOK', entity_id=batch.pk, user=request.user,
            description=f"Menambahkan stok {item.name} sebanyak {quantity} {item.unit_of_measure}",
            **client_meta(request),
        )
        return Response(StockBatchSerializer(batch).data, status=status.HTTP_201_CREATED)


class ReturnView(APIView):
    """
    GET: riwayat pengembalian (milik sendiri; Admin melihat semua).
    POST: kembalikan barang ke gudang sebagai batch baru.
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        queryset = Transaction.objects.filter(transaction_type=Transaction.Type.RETURN).select_related('item', 'user', 'batch__item')
        if not request.user.is_admin:
            queryset = queryset.filter(user=request.user)
        return Response(TransactionSerializer(queryset, many=True).data)

    def post(self, request):
        serializer = ReturnSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = serializer.validated_data['item']
        quantity = serializer.validated_data['quantity']
        batch = fifo.return_stock(item.pk, quantity, notes=serializer.validated_data['notes'], user=request.user)
        notifications.schedule_activity(
            action='RETURN', entity='STOK', entity_id=batch.pk, user=request.user,
            description=f"Mengembalikan {item.name} sebanyak {quantity} {item.unit_of_measure}",
            **client_meta(request),
        )
        return Response(StockBatchSerializer(batch).data, status=status.HTTP_201_CREATED)


# --- Views Permintaan ---

class RequestViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, mixins.CreateModelMixin, viewsets.GenericViewSet):
    """Endpoint untuk permintaan barang: buat, lihat, setujui, tolak."""
    queryset = Request.objects.select_related('requester', 'decided_by').prefetch_related('items__item').all()

    def get_serializer_class(self):
        if self.action == 'list': return RequestListSerializer
        if self.action == 'create': return RequestCreateSerializer
        return RequestDetailSerializer

    def get_permissions(self):
        if self.action in ['approve', 'reject']: self.permission_classes = [IsAdminUser]
        elif self.action == 'retrieve': self.permission_classes = [permissions.IsAuthenticated, IsOwnerOfRequest]
        else: self.permission_classes = [permissions.IsAuthenticated]
        return super().get_permissions()

    def get_queryset(self):
        user = self.request.user
        queryset = super().get_queryset()
        if not user.is_admin:
            queryset = queryset.filter(requester=user)
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter.upper())
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = RequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        req = approvals.create_request(
            request.user,
            serializer.validated_data['items'],
            notes=serializer.validated_data['notes'],
            meta=client_meta(request),
        )
        req = self.get_queryset().get(pk=req.pk)
        return Response(RequestDetailSerializer(req).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        serializer = RequestApproveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        approvals.approve_request(pk, serializer.to_grants(), approver=request.user, meta=client_meta(request))
        return Response(RequestDetailSerializer(self.get_queryset().get(pk=pk)).data)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        serializer = RequestRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        approvals.reject_request(
            pk, approver=request.user, reason=serializer.validated_data['reason'], meta=client_meta(request),
        )
        return Response(RequestDetailSerializer(self.get_queryset().get(pk=pk)).data)



class PublicRequestView(APIView):
    """POST: permintaan barang tanpa login. Peminta dikenali dari email."""
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = PublicRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        req = approvals.create_public_request(
            email=data['email'],
            name=data['name'],
            unit_kerja=data['unit_kerja'],
            items=data['items'],
            notes=data['notes'],
            meta=client_meta(request),
        )
        req = Request.objects.select_related('requester').prefetch_related('items__item').get(pk=req.pk)
        return Response(RequestTrackingSerializer(req).data, status=status.HTTP_201_CREATED)


class RequestTrackingView(APIView):
    """GET ?id=<id atau nomor permintaan> atau ?email=<email peminta>."""
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        queryset = Request.objects.select_related('requester').prefetch_related('items__item')
        request_id = request.query_params.get('id', '').strip()
        email = request.query_params.get('email', '').strip()

        if request_id:
            lookup = {'pk': request_id} if request_id.isdigit() else {'request_number': request_id}
            req = queryset.filter(**lookup).first()
            if req is None:
                raise RequestNotFound(f"Permintaan {request_id} tidak ditemukan.")
            return Response(RequestTrackingSerializer(req).data)

        if email:
            requests = queryset.filter(requester__email__iexact=email).order_by('-created_at', '-id')
            return Response(RequestTrackingSerializer(requests, many=True).data)

        return Response({"error": "ID atau email harus disertakan"}, status=status.HTTP_400_BAD_REQUEST)

# --- Views Log & Transaksi ---

class TransactionViewSet(viewsets.ReadOnlyModelViewSet):
    """Riwayat pergerakan stok per batch (Admin)."""
    queryset = Transaction.objects.select_related('item', 'user', 'batch__item', 'related_request').all()
    serializer_class = TransactionSerializer
    permission_classes = [IsAdminUser]

    def get_queryset(self):
        queryset = super().get_queryset()
        item_id = self.request.query_params.get('item')
        if item_id:
            queryset = queryset.filter(item_id=item_id)
        transaction_type = self.request.query_params.get('type')
        if transaction_type:
            queryset = queryset.filter(transaction_type=transaction_type.upper())
        request_id = self.request.query_params.get('request')
        if request_id:
            queryset = queryset.filter(related_request_id=request_id)
        return queryset


class ActivityLogViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = ActivityLog.objects.select_related('user').all()
    serializer_class = ActivityLogSerializer
    permission_classes = [IsAdminUser]

    def get_queryset(self):
        queryset = super().get_queryset()
        for param in ('action', 'entity'):
            value = self.request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{param: value.upper()})
        return queryset


# --- Views Laporan ---

class FIFOReportView(APIView):
    """Kartu stok FIFO satu barang (?item=<id>)."""
    permission_classes = [IsAdminUser]

    def get(self, request):
        item_id = request.query_params.get('item')
        if not item_id:
            return Response({"error": "Barang ID harus disediakan"}, status=status.HTTP_400_BAD_REQUEST)
        item = reports.get_item(item_id)
        return Response(FIFOReportSerializer(reports.fifo_report(item)).data)


class FIFOExportView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request):
        item_id = request.query_params.get('item')
        if not item_id:
            return Response({"error": "Barang ID harus disediakan"}, status=status.HTTP_400_BAD_REQUEST)
        item = reports.get_item(item_id)
        return xlsx_response(reports.export_fifo_workbook(item), reports.export_filename(item))


class LowStockReportView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request):
        return Response(ItemSerializer(reports.low_stock_items(), many=True).data)


class DashboardView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request):
        summary = reports.dashboard_summary()
        summary['recent_requests'] = RequestListSerializer(summary['recent_requests'], many=True).data
        return Response(summary)


# --- Import Pembelian ---

class ImportPembelianView(APIView):
    """
    POST: unggah file Excel/CSV pembelian (format SAKTI) + tahun pembukuan.
    GET: unduh template Excel.
    """
    permission_classes = [IsAdminUser]
    parser_classes = [MultiPartParser, FormParser]

    def get(self, request):
        return xlsx_response(importers.build_template_workbook(), "Template_Import_Pembelian.xlsx")

    def post(self, request):
        upload_serializer = ImportPembelianUploadSerializer(data=request.data)
        upload_serializer.is_valid(raise_exception=True)
        file = upload_serializer.validated_data['file']

        result = importers.import_pembelian(file, upload_serializer.validated_data['tahun'], user=request.user)

        notifications.schedule_activity(
            action='IMPORT', entity='PEMBELIAN', user=request.user,
            description=(
                f"Import pembelian dari file \"{file.name}\": {result['success']} berhasil, "
                f"{result['failed']} gagal, {result['new_items']} barang baru dibuat"
            ),
            **client_meta(request),
        )
        return Response({
            "message": "Import selesai",
            "summary": {
                "total": result['total'],
                "success": result['success'],
                "failed": result['failed'],
                "new_items": result['new_items'],
            },
            "details": result['details'],
            "errors": result['errors'],
        })
