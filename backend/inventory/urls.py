# backend/inventory/urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'categories', views.CategoryViewSet)
router.register(r'items', views.ItemViewSet)
router.register(r'stock-batches', views.StockBatchViewSet)
router.register(r'requests', views.RequestViewSet)
router.register(r'transactions', views.TransactionViewSet)
router.register(r'activity-logs', views.ActivityLogViewSet)

urlpatterns = [
    # Harus sebelum router agar tidak tertangkap sebagai requests/<pk>/
    path('requests/public/', views.PublicRequestView.as_view(), name='request-public'),
    path('requests/tracking/', views.RequestTrackingView.as_view(), name='request-tracking'),
    path('', include(router.urls)),
    path('returns/', views.ReturnView.as_view(), name='returns'),
    path('reports/fifo/', views.FIFOReportView.as_view(), name='report-fifo'),
    path('reports/fifo/export/', views.FIFOExportView.as_view(), name='report-fifo-export'),
    path('reports/low-stock/', views.LowStockReportView.as_view(), name='report-low-stock'),
    path('dashboard/', views.DashboardView.as_view(), name='dashboard'),
    path('import-pembelian/', views.ImportPembelianView.as_view(), name='import-pembelian'),
]
