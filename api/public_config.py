"""Documentos estáticos de la API pública: configuración del mapa y documentación."""

from django.conf import settings

MAP_CENTER = [-33.4489, -70.6693]  # Santiago, Chile
DEFAULT_ZOOM = 10
ATTRIBUTION = 'Datos proporcionados por referenciales.cl'

PUBLIC_CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET, OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type',
}

POPUP_FIELDS = [
    {'key': 'cbr', 'label': 'CBR', 'type': 'text'},
    {'key': 'fojas', 'label': 'Fojas', 'type': 'text'},
    {'key': 'numero', 'label': 'Número', 'type': 'number'},
    {'key': 'anio', 'label': 'Año', 'type': 'number'},
    {'key': 'predio', 'label': 'Predio', 'type': 'text'},
    {'key': 'comuna', 'label': 'Comuna', 'type': 'text'},
    {'key': 'rol', 'label': 'Rol', 'type': 'text'},
    {'key': 'fechaescritura', 'label': 'Fecha Escritura', 'type': 'date'},
    {'key': 'superficie', 'label': 'Superficie (m²)', 'type': 'number'},
    {'key': 'monto', 'label': 'Monto', 'type': 'currency'},
    {'key': 'observaciones', 'label': 'Observaciones', 'type': 'text'},
]

FILTERS = [
    {'key': 'comuna', 'label': 'Comuna', 'type': 'text'},
    {'key': 'anio', 'label': 'Año', 'type': 'number'},
    {'key': 'limit', 'label': 'Límite de resultados', 'type': 'number'},
]

POINT_SCHEMA = {
    'id': 'number (required)',
    'lat': 'number (required)',
    'lng': 'number (required)',
    'fojas': 'string (optional)',
    'numero': 'number (optional)',
    'anio': 'number (optional)',
    'cbr': 'string (optional)',
    'predio': 'string (optional)',
    'comuna': 'string (optional)',
    'rol': 'string (optional)',
    'fechaescritura': 'string (date formatted dd-mm-aaaa, optional)',
    'superficie': 'number (optional)',
    'monto': 'string (currency formatted, optional)',
    'observaciones': 'string (optional)',
}


def map_config():
    base_url = settings.PUBLIC_API_BASE_URL
    return {
        'api': {
            'version': settings.PUBLIC_API_VERSION,
            'baseUrl': base_url,
            'endpoints': {
                'mapData': '/map-data/',
                'mapConfig': '/map-config/',
                'docs': '/docs/',
                'health': '/health/',
            },
        },
        'map': {
            'defaultCenter': MAP_CENTER,
            'defaultZoom': DEFAULT_ZOOM,
            'minZoom': 5,
            'maxZoom': 19,
            'tileLayer': {
                'url': 'https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png',
                'attribution': '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors',
            },
        },
        'markers': {
            'type': 'CircleMarker',
            'defaultRadius': 20,
            'popupFields': POPUP_FIELDS,
        },
        'filters': {'available': FILTERS},
        'usage': {
            'description': 'API pública para acceder a los datos del mapa de referenciales inmobiliarias de Chile',
            'examples': {
                'basic': f'GET {base_url}/map-data/',
                'withFilters': f'GET {base_url}/map-data/?comuna=santiago&anio=2024&limit=100',
            },
        },
        'dataSchema': {'point': POINT_SCHEMA},
        'cors': {
            'enabled': True,
            'allowedOrigins': '*',
            'allowedMethods': ['GET', 'OPTIONS'],
        },
        'rateLimit': {
            'enabled': False,
            'description': 'Sin límite de tasa por ahora, uso responsable recomendado',
        },
    }


def api_docs():
    base_url = settings.PUBLIC_API_BASE_URL
    return {
        'title': 'API Pública de Referenciales.cl - Documentación',
        'version': settings.PUBLIC_API_VERSION,
        'description': (
            'API pública para acceder a los datos del mapa de referenciales '
            'inmobiliarias de Chile sin autenticación.'
        ),
        'baseUrl': base_url,
        'endpoints': [
            {
                'method': 'GET',
                'path': '/map-data/',
                'description': 'Puntos del mapa con datos públicos de cada referencial',
                'parameters': FILTERS,
                'response': {
                    'success': 'boolean',
                    'data': 'MapPoint[]',
                    'metadata': '{total, timestamp, center, defaultZoom, attribution}',
                },
            },
            {
                'method': 'GET',
                'path': '/map-config/',
                'description': 'Configuración del mapa, campos del popup y ejemplos de uso',
            },
            {
                'method': 'GET',
                'path': '/health/',
                'description': 'Estado del servicio; con ?stats=true agrega estadísticas básicas',
            },
        ],
        'quickStart': {
            'description': 'Comenzar en 3 pasos simples',
            'steps': [
                {'step': 1, 'title': 'Obtener datos del mapa', 'request': f'GET {base_url}/map-data/'},
                {
                    'step': 2,
                    'title': 'Filtrar datos (opcional)',
                    'request': f'GET {base_url}/map-data/?comuna=santiago&anio=2024&limit=50',
                },
                {
                    'step': 3,
                    'title': 'Dibujar los puntos',
                    'detail': 'Usar metadata.center y metadata.defaultZoom para inicializar el mapa',
                },
            ],
        },
        'dataSchema': {'point': POINT_SCHEMA},
        'privacy': 'Comprador, vendedor y usuario creador no se publican.',
    }
