# backend/config/urls.py
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    # URL dari app users dan inventory di bawah /api/
    path('api/', include('users.urls')),
    path('api/', include('inventory.urls')),
]
