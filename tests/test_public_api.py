from datetime import date
from unittest.mock import patch

import pytest
from django.db import DatabaseError

from api.models import Referencial
from api.public_config import MAP_CENTER

MAP_DATA_URL = '/api/public/map-data/'
MAP_CONFIG_URL = '/api/public/map-config/'
DOCS_URL = '/api/public/docs/'
HEALTH_URL = '/api/public/health/'

CAMPOS_PRIVADOS = {'comprador', 'vendedor', 'user', 'userId', 'user_id'}


@pytest.mark.django_db
class TestPublicMapData:
    def test_never_exposes_private_fields(self, api_client, make_referencial):
        make_referencial()
        make_referencial(comuna='Temuco', cbr='Temuco')

        response = api_client.get(MAP_DATA_URL)

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert len(body['data']) == 2
        for point in body['data']:
            assert not CAMPOS_PRIVADOS & set(point)

    def test_filter_by_comuna_with_limit(self, api_client, make_referencial):
        make_referencial(comuna='Santiago', fechaescritura=date(2023, 1, 10))
        make_referencial(comuna='Santiago Centro', fechaescritura=date(2023, 6, 1))
        make_referencial(comuna='Temuco')

        response = api_client.get(MAP_DATA_URL, {'comuna': 'Santiago', 'limit': '1'})

        body = response.json()
        assert len(body['data']) == 1
        assert body['metadata']['total'] == 1
        assert '$' in body['data'][0]['monto']
        assert body['data'][0]['comuna'] == 'Santiago Centro'

    def test_comuna_filter_is_case_insensitive(self, api_client, make_referencial):
        make_referencial(comuna='Providencia')

        response = api_client.get(MAP_DATA_URL, {'comuna': 'PROVI'})

        assert len(response.json()['data']) == 1

    def test_filter_by_anio(self, api_client, make_referencial):
        make_referencial(anio=2022)
        make_referencial(anio=2024)

        response = api_client.get(MAP_DATA_URL, {'anio': '2024'})

        assert [p['anio'] for p in response.json()['data']] == [2024]

    def test_invalid_limit_is_ignored(self, api_client, make_referencial):
        make_referencial()
        make_referencial()

        response = api_client.get(MAP_DATA_URL, {'limit': 'muchos'})

        assert len(response.json()['data']) == 2

    def test_formats_and_metadata(self, api_client, make_referencial):
        referencial = make_referencial(monto=50000000, fechaescritura=date(2023, 5, 10))

        body = api_client.get(MAP_DATA_URL).json()

        point = body['data'][0]
        assert point['id'] == referencial.id
        assert point['monto'] == '$50.000.000'
        assert point['fechaescritura'] == '10-05-2023'
        assert body['metadata']['center'] == MAP_CENTER
        assert body['metadata']['defaultZoom'] == 10
        assert 'timestamp' in body['metadata']
        assert 'attribution' in body['metadata']

    def test_empty_optional_fields_are_omitted(self, api_client, make_referencial):
        make_referencial(monto=None, observaciones='')

        point = api_client.get(MAP_DATA_URL).json()['data'][0]

        assert 'monto' not in point
        assert 'observaciones' not in point
        assert point['lat'] == -33.45

    def test_out_of_range_coordinates_are_excluded(self, api_client, make_referencial):
        make_referencial()
        make_referencial(lat=95.0)

        assert len(api_client.get(MAP_DATA_URL).json()['data']) == 1

    def test_cors_headers(self, api_client):
        response = api_client.get(MAP_DATA_URL)

        assert response['Access-Control-Allow-Origin'] == '*'
        assert response['Access-Control-Allow-Methods'] == 'GET, OPTIONS'
        assert response['Access-Control-Allow-Headers'] == 'Content-Type'

    def test_preflight(self, api_client):
        response = api_client.options(MAP_DATA_URL)

        assert response.status_code == 200
        assert response['Access-Control-Allow-Origin'] == '*'

    def test_write_methods_not_allowed(self, api_client):
        assert api_client.post(MAP_DATA_URL, {}).status_code == 405

    def test_ignores_session_user(self, auth_client, make_referencial):
        make_referencial()

        response = auth_client.get(MAP_DATA_URL)

        assert response.status_code == 200

    def test_database_error(self, api_client):
        with patch.object(Referencial.objects, 'filter', side_effect=DatabaseError('sin conexión')):
            response = api_client.get(MAP_DATA_URL)

        assert response.status_code == 500
        assert response.json()['success'] is False
        assert response['Access-Control-Allow-Origin'] == '*'


@pytest.mark.django_db
class TestPublicConfigAndDocs:
    def test_map_config(self, api_client):
        response = api_client.get(MAP_CONFIG_URL)

        assert response.status_code == 200
        config = response.json()['config']
        assert config['map']['defaultCenter'] == MAP_CENTER
        assert config['map']['defaultZoom'] == 10
        popup_keys = {field['key'] for field in config['markers']['popupFields']}
        assert 'monto' in popup_keys
        assert not CAMPOS_PRIVADOS & popup_keys
        assert not CAMPOS_PRIVADOS & set(config['dataSchema']['point'])
        assert response['Access-Control-Allow-Origin'] == '*'

    def test_docs(self, api_client):
        response = api_client.get(DOCS_URL)

        assert response.status_code == 200
        documentation = response.json()['documentation']
        assert documentation['version'] == '1.0.0'
        assert any(e['path'] == '/map-data/' for e in documentation['endpoints'])


@pytest.mark.django_db
class TestPublicHealth:
    def test_healthy(self, api_client):
        response = api_client.get(HEALTH_URL)

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert body['health']['status'] == 'healthy'
        assert body['health']['services']['database']['status'] == 'up'
        assert body['responseTime'].endswith('ms')
        assert 'stats' not in body['health']

    def test_slow_database_is_degraded(self, api_client):
        with patch('api.health.probe_database', return_value={'status': 'up', 'responseTime': 6000}):
            response = api_client.get(HEALTH_URL)

        assert response.status_code == 200
        assert response.json()['health']['status'] == 'degraded'

    def test_database_down_is_unhealthy(self, api_client):
        with patch('api.health.probe_database', return_value={'status': 'down', 'error': 'connection refused'}):
            response = api_client.get(HEALTH_URL, {'stats': 'true'})

        assert response.status_code == 503
        body = response.json()
        assert body['success'] is False
        assert body['health']['status'] == 'unhealthy'
        assert body['health']['services']['api']['status'] == 'down'
        assert 'stats' not in body['health']

    def test_stats(self, api_client, make_referencial):
        make_referencial()

        response = api_client.get(HEALTH_URL, {'stats': 'true'})

        stats = response.json()['health']['stats']
        assert stats['totalReferenciales'] == 1
        assert stats['lastUpdate'] != 'No data'

    def test_stats_without_data(self, api_client):
        stats = api_client.get(HEALTH_URL, {'stats': 'true'}).json()['health']['stats']

        assert stats == {'totalReferenciales': 0, 'lastUpdate': 'No data'}

    def test_unexpected_error_is_unhealthy(self, api_client):
        with patch('api.views.build_health', side_effect=RuntimeError('boom')):
            response = api_client.get(HEALTH_URL)

        assert response.status_code == 503
        assert response.json()['health']['status'] == 'unhealthy'
