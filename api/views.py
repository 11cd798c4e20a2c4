from rest_framework import viewsets, generics, permissions, status
from rest_framework.decorators import api_view
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from rest_framework.parsers import MultiPartParser, FormParser
from django.contrib.auth import get_user_model, logout
from django.db import DatabaseError, transaction
from django.db.models import Count, Q, ProtectedError
from django.http import HttpResponse
from django.utils import timezone
from .models import Conservador, Referencial
from .serializers import (
    ConservadorSerializer,
    PublicMapPointSerializer,
    ReferencialSerializer,
    TopComunaSerializer,
)
from . import csv_import
from .exceptions import (
    CSVFormatError,
    CSVValidationError,
    GeocodingNotFoundError,
    ImportTransactionError,
    InvalidRolError,
)
from .geocoding import GeocodingResolver
from .health import build_health
from .public_config import ATTRIBUTION, DEFAULT_ZOOM, MAP_CENTER, PUBLIC_CORS_HEADERS, api_docs, map_config
import logging
import time
from rest_framework.views import APIView
import django_filters

logger = logging.getLogger(__name__)


# Configuración de paginación
class StandardResultsSetPagination(PageNumberPagination):
    page_size = 10
    page_size_query_param = 'per_page'
    max_page_size = 500


class IsOwnerOrReadOnly(permissions.BasePermission):
    """
    Cualquier usuario autenticado puede leer; solo el dueño modifica o elimina.
    """
    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True
        return obj.user_id == request.user.pk


class ReferencialFilterSet(django_filters.FilterSet):
    """
    Filtros del listado privado de referenciales.
    """
    comuna = django_filters.CharFilter(field_name='comuna', lookup_expr='icontains')
    cbr = django_filters.CharFilter(field_name='cbr', lookup_expr='icontains')
    anio = django_filters.NumberFilter(field_name='anio')
    fecha_desde = django_filters.DateFilter(field_name='fechaescritura', lookup_expr='gte')
    fecha_hasta = django_filters.DateFilter(field_name='fechaescritura', lookup_expr='lte')

    class Meta:
        model = Referencial
        fields = ['comuna', 'cbr', 'anio', 'fecha_desde', 'fecha_hasta']


class PublicMapDataFilterSet(django_filters.FilterSet):
    """
    Filtros opcionales del mapa público.
    """
    comuna = django_filters.CharFilter(field_name='comuna', lookup_expr='icontains')
    anio = django_filters.NumberFilter(field_name='anio')

    class Meta:
        model = Referencial
        fields = ['comuna', 'anio']


class ReferencialViewSet(viewsets.ModelViewSet):
    """
    CRUD de referenciales para usuarios autenticados. Soporta filtros,
    búsqueda general (inputBusqueda) y paginación.
    """
    queryset = Referencial.objects.all().select_related('conservador')
    serializer_class = ReferencialSerializer
    pagination_class = StandardResultsSetPagination
    permission_classes = [permissions.IsAuthenticated, IsOwnerOrReadOnly]
    filterset_class = ReferencialFilterSet

    def get_queryset(self):
        queryset = super().get_queryset()
        input_busqueda = self.request.query_params.get('inputBusqueda')
        if input_busqueda:
            queryset = queryset.filter(
                Q(comuna__icontains=input_busqueda) |
                Q(cbr__icontains=input_busqueda) |
                Q(predio__icontains=input_busqueda) |
                Q(rol__icontains=input_busqueda)
            )
        return queryset.order_by('-fechaescritura', '-id')


class ConservadorListAPIView(generics.ListAPIView):
    """
    Listado de conservadores ordenado por región, comuna y nombre.
    """
    queryset = Conservador.objects.all().order_by('region', 'comuna', 'nombre')
    serializer_class = ConservadorSerializer
    permission_classes = [permissions.IsAuthenticated]


@api_view(['GET'])
def top_comunas(request):
    """
    Las 4 comunas con más referenciales, para el gráfico del dashboard.
    """
    try:
        comunas = (
            Referencial.objects.exclude(comuna='')
            .values('comuna')
            .annotate(count=Count('id'))
            .order_by('-count', 'comuna')[:4]
        )
        return Response(TopComunaSerializer(list(comunas), many=True).data)
    except DatabaseError as e:
        logger.error('Error al obtener top comunas: %s', e)
        return Response(
            {'error': 'Error al obtener datos de comunas'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


class ReferencialesCSVUploadAPIView(APIView):
    """
    Carga masiva de referenciales desde un CSV (campos `file` y `userId`).
    Si alguna fila es inválida no se importa nada y se devuelven todos los errores.
    """
    parser_classes = [MultiPartParser, FormParser]
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, *args, **kwargs):
        archivo = request.FILES.get('file')
        user_id = request.data.get('userId')

        if not archivo:
            return Response({'error': 'No se proporcionó archivo'}, status=status.HTTP_400_BAD_REQUEST)
        if not user_id:
            return Response({'error': 'No se proporcionó ID de usuario'}, status=status.HTTP_400_BAD_REQUEST)

        # Los registros quedan a nombre del usuario de la sesión
        if str(user_id) != str(request.user.pk):
            logger.warning('Carga CSV rechazada: usuario %s intentó cargar como %s', request.user.pk, user_id)
            return Response(
                {'error': 'El ID de usuario no corresponde a la sesión', 'code': 'USER_MISMATCH'},
                status=status.HTTP_403_FORBIDDEN,
            )
        user = request.user

        try:
            count = csv_import.process_csv(archivo.read(), user)
        except CSVValidationError as e:
            return Response(
                {
                    'error': 'Error de validación en el archivo CSV',
                    'validationErrors': [error.as_dict() for error in e.errors],
                },
                status=status.HTTP_400_BAD_REQUEST,
            )
        except CSVFormatError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except ImportTransactionError as e:
            return Response(
                {'error': 'Error al procesar el archivo CSV', 'message': str(e), 'row': e.row},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        except Exception as e:
            logger.exception('Error al procesar CSV')
            return Response(
                {'error': 'Error al procesar el archivo CSV', 'message': str(e)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response({'success': True, 'count': count})


class ReferencialesCSVTemplateAPIView(APIView):
    """
    Plantilla CSV para la carga masiva.
    formato=csv (comas), csv-semicolon (punto y coma) o excel (punto y coma + BOM UTF-8).
    """
    FORMATOS = {
        'csv': (',', False, 'plantilla-referenciales.csv'),
        'csv-semicolon': (';', False, 'plantilla-referenciales-windows.csv'),
        'excel': (';', True, 'plantilla-referenciales.csv'),
    }

    def get(self, request, *args, **kwargs):
        formato = request.query_params.get('formato', 'csv')
        if formato not in self.FORMATOS:
            return Response(
                {'error': f'Formato no soportado: {formato}', 'formatos': list(self.FORMATOS)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        delimiter, bom, filename = self.FORMATOS[formato]
        response = HttpResponse(
            csv_import.generate_template(delimiter=delimiter, bom=bom),
            content_type='text/csv; charset=utf-8',
        )
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        return response


class ReferencialesCSVExportAPIView(APIView):
    """
    Exporta los referenciales filtrados con las mismas columnas de la carga
    masiva, de modo que el archivo se puede volver a importar.
    Acepta los filtros del listado y formato=csv|csv-semicolon|excel.
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, *args, **kwargs):
        formato = request.query_params.get('formato', 'csv')
        if formato not in ReferencialesCSVTemplateAPIView.FORMATOS:
            return Response(
                {'error': f'Formato no soportado: {formato}', 'formatos': list(ReferencialesCSVTemplateAPIView.FORMATOS)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        delimiter, bom, _ = ReferencialesCSVTemplateAPIView.FORMATOS[formato]

        filterset = ReferencialFilterSet(
            request.query_params,
            queryset=Referencial.objects.all().order_by('-fechaescritura', '-id'),
        )
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            content = csv_import.export_csv(filterset.qs, delimiter=delimiter, bom=bom)
        except DatabaseError as e:
            logger.error('Error al exportar referenciales: %s', e)
            return Response(
                {'error': 'Error al exportar referenciales'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        response = HttpResponse(content, content_type='text/csv; charset=utf-8')
        fecha = timezone.localdate().isoformat()
        response['Content-Disposition'] = f'attachment; filename="referenciales-{fecha}.csv"'
        return response


class GeocodeSIIAPIView(APIView):
    """
    Geocodificación a partir del rol de avalúo y la comuna.
    Prueba API, scraping del SII y centro de la comuna, en ese orden.
    """

    def post(self, request, *args, **kwargs):
        rol = request.data.get('rol')
        comuna = request.data.get('comuna')

        try:
            result = GeocodingResolver.default().resolve(rol, comuna)
        except InvalidRolError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except GeocodingNotFoundError:
            return Response(
                {
                    'success': False,
                    'error': 'No se pudieron obtener las coordenadas para el rol especificado',
                    'rol': rol,
                    'comuna': comuna,
                },
                status=status.HTTP_404_NOT_FOUND,
            )
        except Exception:
            logger.exception('Error en API geocode-sii')
            return Response({'error': 'Error interno del servidor'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        payload = {
            'success': True,
            'method': result.method,
            'data': result.as_data(rol, comuna),
        }
        if result.warning:
            payload['warning'] = result.warning
        return Response(payload)


class DeleteAccountAPIView(APIView):
    """
    Elimina la cuenta del usuario autenticado, salvo que tenga referenciales asociados.
    """
    permission_classes = [permissions.IsAuthenticated]

    def delete(self, request, *args, **kwargs):
        user = get_user_model().objects.filter(pk=request.user.pk).first()
        if user is None:
            return Response(
                {
                    'success': False,
                    'message': 'No se encontró la cuenta de usuario. Por favor, contacta con soporte.',
                    'error': 'USER_NOT_FOUND',
                },
                status=status.HTTP_404_NOT_FOUND,
            )

        record_count = user.referenciales.count()
        if record_count > 0:
            logger.info('Eliminación de cuenta bloqueada: usuario %s tiene %s referenciales', user.pk, record_count)
            return self._has_records_response(record_count)

        try:
            with transaction.atomic():
                user.delete()
        except ProtectedError:
            return self._has_records_response(user.referenciales.count())
        except DatabaseError as e:
            logger.error('Error al eliminar cuenta %s: %s', request.user.pk, e)
            return Response(
                {
                    'success': False,
                    'message': 'Ocurrió un error al intentar eliminar tu cuenta. Por favor, inténtalo de nuevo más tarde.',
                    'error': 'DATABASE_ERROR',
                },
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        logout(request)
        return Response({
            'success': True,
            'message': 'Tu cuenta ha sido eliminada exitosamente. Gracias por usar nuestros servicios.',
        })

    def _has_records_response(self, record_count):
        return Response(
            {
                'success': False,
                'message': (
                    'No es posible eliminar tu cuenta debido a que tienes registros asociados. '
                    'Por favor, elimina primero todos tus registros e inténtalo de nuevo.'
                ),
                'error': 'HAS_ASSOCIATED_RECORDS',
                'recordCount': record_count,
            },
            status=status.HTTP_400_BAD_REQUEST,
        )


# --- API PÚBLICA (sin autenticación, CORS abierto) ---

class PublicAPIView(APIView):
    """
    Base de los endpoints públicos: sin autenticación, solo GET y OPTIONS,
    con encabezados CORS abiertos a cualquier origen.
    """
    authentication_classes = []
    permission_classes = [permissions.AllowAny]
    http_method_names = ['get', 'options']

    def options(self, request, *args, **kwargs):
        return Response(status=status.HTTP_200_OK)

    def finalize_response(self, request, response, *args, **kwargs):
        response = super().finalize_response(request, response, *args, **kwargs)
        for header, value in PUBLIC_CORS_HEADERS.items():
            response[header] = value
        return response


def _parse_limit(raw):
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        return None
    return limit if limit > 0 else None


class PublicMapDataAPIView(PublicAPIView):
    """
    Puntos del mapa público. Filtros opcionales: comuna, anio, limit.
    Nunca incluye comprador, vendedor ni el usuario dueño del registro.
    """

    def get(self, request, *args, **kwargs):
        try:
            queryset = Referencial.objects.filter(
                lat__isnull=False,
                lng__isnull=False,
                lat__gte=-90, lat__lte=90,
                lng__gte=-180, lng__lte=180,
            ).order_by('-fechaescritura', '-id')
            queryset = PublicMapDataFilterSet(request.query_params, queryset=queryset).qs

            limit = _parse_limit(request.query_params.get('limit'))
            if limit:
                queryset = queryset[:limit]

            data = PublicMapPointSerializer(queryset, many=True).data
        except Exception:
            logger.exception('Error en API pública del mapa')
            return Response(
                {
                    'success': False,
                    'error': 'Error interno del servidor',
                    'message': 'No se pudieron obtener los datos del mapa',
                },
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response({
            'success': True,
            'data': data,
            'metadata': {
                'total': len(data),
                'timestamp': timezone.now().isoformat(),
                'center': MAP_CENTER,
                'defaultZoom': DEFAULT_ZOOM,
                'attribution': ATTRIBUTION,
            },
        })


class PublicMapConfigAPIView(PublicAPIView):
    """
    Configuración para integrar el mapa: centro, zoom, campos del popup y ejemplos.
    """

    def get(self, request, *args, **kwargs):
        return Response({
            'success': True,
            'config': map_config(),
            'timestamp': timezone.now().isoformat(),
        })


class PublicDocsAPIView(PublicAPIView):
    """
    Documentación de la API pública.
    """

    def get(self, request, *args, **kwargs):
        return Response({
            'success': True,
            'documentation': api_docs(),
            'timestamp': timezone.now().isoformat(),
        })


class PublicHealthAPIView(PublicAPIView):
    """
    Estado del servicio: healthy, degraded (base de datos lenta) o unhealthy (503).
    Con ?stats=true agrega el total de referenciales y la última actualización.
    """

    def get(self, request, *args, **kwargs):
        inicio = time.perf_counter()
        include_stats = request.query_params.get('stats') == 'true'
        try:
            status_code, health = build_health(include_stats=include_stats)
        except Exception:
            logger.exception('Health check error')
            return Response(
                {
                    'success': False,
                    'health': {'status': 'unhealthy'},
                    'error': 'Health check failed',
                    'responseTime': f'{round((time.perf_counter() - inicio) * 1000)}ms',
                },
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )

        return Response(
            {
                'success': health['status'] != 'unhealthy',
                'health': health,
                'responseTime': f'{round((time.perf_counter() - inicio) * 1000)}ms',
            },
            status=status_code,
        )
