"""Geocodificación de propiedades a partir del rol de avalúo.

Las estrategias se prueban en orden, de la más precisa a la más aproximada:

1. API de datos del SII (SimpleAPI) + geocodificación de la dirección.
2. Scraping de la ficha del SII, solo si está habilitado por configuración.
3. Centro de la comuna con una pequeña variación aleatoria.

Cada estrategia devuelve un GeocodeResult o None. Las excepciones de una
estrategia se registran y se pasa a la siguiente; solo cuando todas fallan
se informa un error.
"""

import logging
import random
import re
from dataclasses import dataclass, field
from typing import Optional

import requests
from bs4 import BeautifulSoup
from django.conf import settings

from .exceptions import GeocodingNotFoundError, InvalidRolError
from .normalization import buscar_mejor_coincidencia, norm_str

logger = logging.getLogger(__name__)

ROL_RE = re.compile(r'[0-9]{1,6}-[0-9]{1,2}')

GOOGLE_GEOCODE_URL = 'https://maps.googleapis.com/maps/api/geocode/json'

FALLBACK_WARNING = 'Coordenadas aproximadas basadas en comuna'

# Centros aproximados de las comunas principales, para cuando no hay API key de Google
COMUNAS_COORDS = {
    'Santiago': (-33.4489, -70.6693),
    'Valparaíso': (-33.0472, -71.6127),
    'Concepción': (-36.8201, -73.0444),
    'Temuco': (-38.7394, -72.5986),
    'Antofagasta': (-23.6509, -70.3975),
    'Iquique': (-20.2208, -70.1431),
    'Rancagua': (-34.1708, -70.7394),
    'Talca': (-35.4264, -71.6554),
    'Chillán': (-36.6067, -72.1034),
    'Osorno': (-40.5736, -73.1328),
    'Puerto Montt': (-41.4693, -72.9424),
    'Punta Arenas': (-53.1638, -70.9171),
    'Nueva Imperial': (-38.7448, -72.9506),
    'Valdivia': (-39.8142, -73.2459),
    'La Serena': (-29.9027, -71.2519),
}


@dataclass
class GeocodeResult:
    lat: float
    lng: float
    method: str = ''
    extra: dict = field(default_factory=dict)
    warning: Optional[str] = None

    def as_data(self, rol, comuna):
        data = {'lat': self.lat, 'lng': self.lng, 'rol': rol, 'comuna': comuna}
        data.update(self.extra)
        return data


def validate_rol(rol, comuna):
    if not rol or not comuna:
        raise InvalidRolError('Rol y comuna son requeridos')
    if not ROL_RE.fullmatch(str(rol)):
        raise InvalidRolError('Formato de rol inválido. Use formato: 123-45')


def _get_json(url, params, headers=None):
    response = requests.get(url, params=params, headers=headers, timeout=settings.GEOCODING_TIMEOUT)
    response.raise_for_status()
    return response.json()


def geocode_address(address):
    """Dirección -> (lat, lng) con Google si hay API key, si no con Nominatim."""
    if settings.GOOGLE_MAPS_API_KEY:
        data = _get_json(GOOGLE_GEOCODE_URL, {'address': address, 'key': settings.GOOGLE_MAPS_API_KEY})
        if data.get('status') == 'OK' and data.get('results'):
            location = data['results'][0]['geometry']['location']
            return float(location['lat']), float(location['lng'])
        return None

    data = _get_json(
        settings.NOMINATIM_URL,
        {'q': address, 'format': 'json', 'accept-language': 'es', 'countrycodes': 'cl', 'limit': 1},
        headers={'User-Agent': settings.NOMINATIM_USER_AGENT},
    )
    if data:
        return float(data[0]['lat']), float(data[0]['lon'])
    return None


class GeocodingStrategy:
    method = ''
    warning = None

    def is_enabled(self):
        return True

    def resolve(self, rol, comuna):
        raise NotImplementedError


class ApiGeocodingStrategy(GeocodingStrategy):
    """Consulta la propiedad por rol en SimpleAPI y geocodifica su dirección."""

    method = 'api_geocoding'

    def resolve(self, rol, comuna):
        if not settings.SIMPLEAPI_KEY:
            logger.debug('SIMPLEAPI_KEY no configurada, se omite la geocodificación por API')
            return None

        data = _get_json(
            settings.SIMPLEAPI_URL,
            {'rol': rol, 'comuna': comuna},
            headers={'Authorization': settings.SIMPLEAPI_KEY},
        )
        direccion = data.get('direccion') or data.get('address')
        if not direccion:
            return None

        coords = geocode_address(f'{direccion}, {comuna}, Chile')
        if coords is None:
            return None
        return GeocodeResult(lat=coords[0], lng=coords[1])


# Etiqueta en la ficha del SII -> campo de enriquecimiento
FICHA_SII_LABELS = {
    'DIRECCION': 'address',
    'SUPERFICIE': 'surface',
    'AVALUO': 'avaluo',
}


def _solo_numero(texto):
    """'1.234,5 m2' -> 1234.5"""
    match = re.search(r'\d[\d.]*(,\d+)?', texto or '')
    if not match:
        return None
    return float(match.group(0).replace('.', '').replace(',', '.'))


def parse_ficha_sii(html):
    """Extrae dirección, superficie y avalúo de la tabla de la ficha del SII."""
    soup = BeautifulSoup(html, 'html.parser')
    ficha = {}
    for fila in soup.find_all('tr'):
        celdas = [c.get_text(' ', strip=True) for c in fila.find_all(['td', 'th'])]
        if len(celdas) < 2:
            continue
        etiqueta = norm_str(celdas[0])
        for prefijo, campo in FICHA_SII_LABELS.items():
            if etiqueta.startswith(prefijo) and campo not in ficha:
                ficha[campo] = celdas[1]

    if 'surface' in ficha:
        ficha['surface'] = _solo_numero(ficha['surface'])
    if 'avaluo' in ficha:
        avaluo = _solo_numero(ficha['avaluo'])
        ficha['avaluo'] = int(avaluo) if avaluo is not None else None
    return ficha


class ScrapingStrategy(GeocodingStrategy):
    """Lee la ficha pública del SII. Solo corre si SII_SCRAPING_ENABLED está activo."""

    method = 'scraping'

    def is_enabled(self):
        return settings.SII_SCRAPING_ENABLED

    def resolve(self, rol, comuna):
        manzana, predio = rol.split('-')
        response = requests.get(
            settings.SII_SCRAPER_URL,
            params={'comuna': comuna, 'manzana': manzana, 'predio': predio},
            headers={'User-Agent': settings.NOMINATIM_USER_AGENT},
            timeout=settings.GEOCODING_TIMEOUT,
        )
        response.raise_for_status()

        ficha = parse_ficha_sii(response.text)
        if not ficha.get('address'):
            return None

        coords = geocode_address(f"{ficha['address']}, {comuna}, Chile")
        if coords is None:
            return None
        return GeocodeResult(lat=coords[0], lng=coords[1], extra=ficha)


class ComunaFallbackStrategy(GeocodingStrategy):
    """Centro de la comuna más una variación uniforme de ±jitter grados por eje.

    La variación evita que todas las propiedades sin geocodificar de una
    comuna queden en el mismo punto del mapa.
    """

    method = 'fallback'
    warning = FALLBACK_WARNING

    def __init__(self, jitter=0.005, rng=None):
        self.jitter = jitter
        self.rng = rng or random.Random()

    def geocode_comuna(self, comuna):
        if settings.GOOGLE_MAPS_API_KEY:
            return geocode_address(f'{comuna}, Chile')
        logger.info('GOOGLE_MAPS_API_KEY no configurada - usando coordenadas aproximadas')
        nombre = buscar_mejor_coincidencia(comuna, list(COMUNAS_COORDS))
        return COMUNAS_COORDS.get(nombre)

    def resolve(self, rol, comuna):
        centro = self.geocode_comuna(comuna)
        if centro is None:
            return None
        return GeocodeResult(
            lat=centro[0] + self.rng.uniform(-self.jitter, self.jitter),
            lng=centro[1] + self.rng.uniform(-self.jitter, self.jitter),
        )


class GeocodingResolver:
    def __init__(self, strategies):
        self.strategies = list(strategies)

    @classmethod
    def default(cls):
        return cls([ApiGeocodingStrategy(), ScrapingStrategy(), ComunaFallbackStrategy()])

    def resolve(self, rol, comuna):
        """Prueba las estrategias en orden y devuelve el primer resultado.

        Lanza InvalidRolError antes de cualquier llamada de red y
        GeocodingNotFoundError si ninguna estrategia obtiene coordenadas.
        """
        validate_rol(rol, comuna)

        for strategy in self.strategies:
            if not strategy.is_enabled():
                continue
            try:
                result = strategy.resolve(rol, comuna)
            except Exception as e:
                logger.warning('Error en método %s para rol %s (%s): %s', strategy.method, rol, comuna, e)
                continue
            if result is None:
                continue

            result.method = strategy.method
            if strategy.warning:
                result.warning = strategy.warning
            logger.info('Rol %s (%s) geocodificado con método %s', rol, comuna, strategy.method)
            return result

        raise GeocodingNotFoundError(rol, comuna)
