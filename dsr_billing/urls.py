from django.contrib import admin
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularSwaggerView,
    SpectacularRedocView,
)

# Import views
from accounts.views import LoginView, ProfileView, UserViewSet
from billing.views import BillViewSet, CollectionViewSet
from dashboard.views import AdminDashboardView, StaffDashboardView
from inventory.views import ProductViewSet
from retailers.views import RetailerViewSet
from reports.views import (
    BillsReportView,
    BillsReportExportView,
    TodayCollectionsView,
    TodayCollectionsExportView,
    DSRSummaryView,
)
from sales.views import OrderViewSet


# Create router
router = DefaultRouter(trailing_slash=False)
router.register(r'users', UserViewSet, basename='user')
router.register(r'products', ProductViewSet, basename='product')
router.register(r'retailers', RetailerViewSet, basename='retailer')
router.register(r'bills', BillViewSet, basename='bill')
router.register(r'collections', CollectionViewSet, basename='collection')
router.register(r'orders', OrderViewSet, basename='order')

urlpatterns = [
    path('admin/', admin.site.urls),

    # Auth endpoints
    path('api/auth/login', LoginView.as_view(), name='login'),
    path('api/auth/refresh', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/auth/profile', ProfileView.as_view(), name='profile'),

    # All API endpoints
    path('api/', include(router.urls)),

    # ===== DASHBOARDS =====
    path('api/dashboard/admin', AdminDashboardView.as_view(), name='dashboard-admin'),
    path('api/dashboard/staff', StaffDashboardView.as_view(), name='dashboard-staff'),

    # ===== REPORTS =====
    path('api/reports/bills',
         BillsReportView.as_view(),
         name='report-bills'),

    path('api/reports/bills/export',
         BillsReportExportView.as_view(),
         name='report-bills-export'),

    path('api/reports/today-collections',
         TodayCollectionsView.as_view(),
         name='report-today-collections'),

    path('api/reports/today-collections/export',
         TodayCollectionsExportView.as_view(),
         name='report-today-collections-export'),

    path('api/reports/dsr-summary',
         DSRSummaryView.as_view(),
         name='report-dsr-summary'),

    # OpenAPI schema
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs', SpectacularSwaggerView.as_view(url_name='schema')),
    path('api/playground', SpectacularRedocView.as_view(url_name='schema')),
]
