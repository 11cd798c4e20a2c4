import logging
import time

from django.conf import settings
from django.db import DatabaseError, connection
from django.db.models import Max
from django.utils import timezone

from .models import Referencial

logger = logging.getLogger(__name__)

# Sobre este tiempo de respuesta (ms) la base de datos se considera lenta
DEGRADED_THRESHOLD_MS = 5000


def probe_database():
    """SELECT 1 sobre la conexión compartida; mide el tiempo en milisegundos."""
    inicio = time.perf_counter()
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
            cursor.fetchone()
    except DatabaseError as e:
        logger.error('Health check: base de datos no disponible: %s', e)
        return {'status': 'down', 'error': str(e)}
    return {'status': 'up', 'responseTime': round((time.perf_counter() - inicio) * 1000)}


def overall_status(database_check):
    if database_check.get('status') == 'down':
        return 'unhealthy'
    if (database_check.get('responseTime') or 0) > DEGRADED_THRESHOLD_MS:
        return 'degraded'
    return 'healthy'


def basic_stats():
    try:
        resumen = Referencial.objects.aggregate(ultima=Max('updated_at'))
        total = Referencial.objects.count()
    except DatabaseError as e:
        logger.error('Health check: no se pudieron obtener estadísticas: %s', e)
        return None
    ultima = resumen['ultima']
    return {
        'totalReferenciales': total,
        'lastUpdate': ultima.isoformat() if ultima else 'No data',
    }


def build_health(include_stats=False):
    """Devuelve (status_code, health) con el estado general del servicio."""
    database_check = probe_database()
    status = overall_status(database_check)
    api_up = status != 'unhealthy'

    health = {
        'status': status,
        'timestamp': timezone.now().isoformat(),
        'version': settings.PUBLIC_API_VERSION,
        'environment': settings.ENVIRONMENT,
        'services': {
            'database': database_check,
            'api': {
                'status': 'up' if api_up else 'down',
                'endpoints': {
                    'mapData': api_up,
                    'mapConfig': True,
                    'docs': True,
                },
            },
        },
    }
    if include_stats and status != 'unhealthy':
        stats = basic_stats()
        if stats:
            health['stats'] = stats

    return (503 if status == 'unhealthy' else 200), health
