from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    ReferencialViewSet,
    ConservadorListAPIView,
    top_comunas,
    ReferencialesCSVUploadAPIView,
    ReferencialesCSVTemplateAPIView,
    ReferencialesCSVExportAPIView,
    GeocodeSIIAPIView,
    DeleteAccountAPIView,
    PublicMapDataAPIView,
    PublicMapConfigAPIView,
    PublicDocsAPIView,
    PublicHealthAPIView,
)

router = DefaultRouter()
router.register(r'referenciales', ReferencialViewSet, basename='referencial')

urlpatterns = [
    # Carga masiva (antes que el router para no chocar con referenciales/<pk>/)
    path('referenciales/upload-csv/', ReferencialesCSVUploadAPIView.as_view(), name='referenciales-upload-csv'),
    path('referenciales/plantilla-csv/', ReferencialesCSVTemplateAPIView.as_view(), name='referenciales-plantilla-csv'),
    path('referenciales/exportar-csv/', ReferencialesCSVExportAPIView.as_view(), name='referenciales-exportar-csv'),
    path('conservadores/', ConservadorListAPIView.as_view(), name='conservadores'),
    path('top-comunas/', top_comunas, name='top-comunas'),
    path('geocode-sii/', GeocodeSIIAPIView.as_view(), name='geocode-sii'),
    path('delete-account/', DeleteAccountAPIView.as_view(), name='delete-account'),
    # API pública
    path('public/map-data/', PublicMapDataAPIView.as_view(), name='public-map-data'),
    path('public/map-config/', PublicMapConfigAPIView.as_view(), name='public-map-config'),
    path('public/docs/', PublicDocsAPIView.as_view(), name='public-docs'),
    path('public/health/', PublicHealthAPIView.as_view(), name='public-health'),
    path('', include(router.urls)),
]
