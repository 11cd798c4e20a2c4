from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.db.models import ProtectedError
from django.utils import timezone
from rest_framework.test import APIClient

from api.models import POR_DEFINIR, Conservador, Referencial

REFERENCIALES_URL = '/api/referenciales/'
CONSERVADORES_URL = '/api/conservadores/'
TOP_COMUNAS_URL = '/api/top-comunas/'
DELETE_ACCOUNT_URL = '/api/delete-account/'


@pytest.fixture
def payload():
    return {
        'lat': -38.7394,
        'lng': -72.5986,
        'fojas': '2050',
        'numero': 1530,
        'anio': 2023,
        'cbr': 'cbr=Temuco',
        'comprador': 'Inmobiliaria Sur SpA',
        'vendedor': 'María González',
        'predio': 'Parcela 7',
        'comuna': 'Temuco',
        'rol': '4521-12',
        'fechaescritura': '2023-08-14',
        'superficie': 5000.0,
        'monto': 85000000,
        'observaciones': 'Parcela de agrado',
    }


@pytest.mark.django_db
class TestReferencialViewSet:
    def test_requires_authentication(self, api_client):
        assert api_client.get(REFERENCIALES_URL).status_code == 401

    def test_create_resolves_conservador(self, auth_client, user, payload):
        response = auth_client.post(REFERENCIALES_URL, payload, format='json')

        assert response.status_code == 201
        body = response.json()
        assert body['cbr'] == 'Temuco'
        assert body['userId'] == user.pk
        assert body['conservador']['nombre'] == 'Temuco'
        assert body['conservador']['region'] == POR_DEFINIR
        referencial = Referencial.objects.get(pk=body['id'])
        assert referencial.user == user

    def test_create_ignores_user_in_payload(self, auth_client, user, other_user, payload):
        payload['userId'] = other_user.pk

        response = auth_client.post(REFERENCIALES_URL, payload, format='json')

        assert Referencial.objects.get(pk=response.json()['id']).user == user

    @pytest.mark.parametrize('campo,valor', [
        ('superficie', 0),
        ('monto', -5),
        ('lat', 100),
        ('lng', -200),
        ('cbr', 'cbr='),
    ])
    def test_create_rejects_invalid_values(self, auth_client, payload, campo, valor):
        payload[campo] = valor

        response = auth_client.post(REFERENCIALES_URL, payload, format='json')

        assert response.status_code == 400
        assert campo in response.json()
        assert Referencial.objects.count() == 0

    def test_create_rejects_future_date(self, auth_client, payload):
        payload['fechaescritura'] = (timezone.localdate() + timedelta(days=1)).isoformat()

        response = auth_client.post(REFERENCIALES_URL, payload, format='json')

        assert response.status_code == 400
        assert 'fechaescritura' in response.json()

    def test_list_is_paginated_and_searchable(self, auth_client, make_referencial):
        make_referencial(predio='Fundo Los Robles')
        make_referencial(predio='Lote 9')

        response = auth_client.get(REFERENCIALES_URL, {'inputBusqueda': 'robles'})

        body = response.json()
        assert body['count'] == 1
        assert body['results'][0]['predio'] == 'Fundo Los Robles'

    def test_filter_by_anio(self, auth_client, make_referencial):
        make_referencial(anio=2021)
        make_referencial(anio=2023)

        response = auth_client.get(REFERENCIALES_URL, {'anio': 2021})

        assert [r['anio'] for r in response.json()['results']] == [2021]

    def test_only_owner_can_update(self, other_user, make_referencial):
        referencial = make_referencial()
        client = APIClient()
        client.force_authenticate(user=other_user)

        response = client.patch(f'{REFERENCIALES_URL}{referencial.pk}/', {'predio': 'Otro'}, format='json')

        assert response.status_code == 403

    def test_owner_updates_cbr(self, auth_client, make_referencial):
        referencial = make_referencial()

        response = auth_client.patch(
            f'{REFERENCIALES_URL}{referencial.pk}/', {'cbr': 'Valdivia'}, format='json'
        )

        assert response.status_code == 200
        referencial.refresh_from_db()
        assert referencial.conservador.nombre == 'Valdivia'

    def test_owner_deletes(self, auth_client, make_referencial):
        referencial = make_referencial()

        response = auth_client.delete(f'{REFERENCIALES_URL}{referencial.pk}/')

        assert response.status_code == 204
        assert not Referencial.objects.exists()


@pytest.mark.django_db
class TestConservadores:
    def test_ordered_by_region_comuna_nombre(self, auth_client):
        Conservador.objects.create(nombre='Valdivia', comuna='Valdivia', region='Los Ríos')
        Conservador.objects.create(nombre='Temuco', comuna='Temuco', region='Araucanía')
        Conservador.objects.create(nombre='Angol', comuna='Angol', region='Araucanía')

        response = auth_client.get(CONSERVADORES_URL)

        assert [c['nombre'] for c in response.json()] == ['Angol', 'Temuco', 'Valdivia']

    def test_requires_authentication(self, api_client):
        assert api_client.get(CONSERVADORES_URL).status_code == 401


@pytest.mark.django_db
def test_top_comunas(api_client, make_referencial):
    for comuna, veces in [('Temuco', 3), ('Santiago', 2), ('Osorno', 1), ('Angol', 1), ('Lautaro', 1)]:
        for _ in range(veces):
            make_referencial(comuna=comuna)

    response = api_client.get(TOP_COMUNAS_URL)

    assert response.status_code == 200
    assert response.json() == [
        {'comuna': 'Temuco', 'count': 3},
        {'comuna': 'Santiago', 'count': 2},
        {'comuna': 'Angol', 'count': 1},
        {'comuna': 'Lautaro', 'count': 1},
    ]


@pytest.mark.django_db
class TestDeleteAccount:
    def test_requires_authentication(self, api_client):
        assert api_client.delete(DELETE_ACCOUNT_URL).status_code == 401

    def test_blocked_when_user_has_records(self, auth_client, user, make_referencial):
        make_referencial()
        make_referencial()

        response = auth_client.delete(DELETE_ACCOUNT_URL)

        assert response.status_code == 400
        body = response.json()
        assert body['error'] == 'HAS_ASSOCIATED_RECORDS'
        assert body['recordCount'] == 2
        assert get_user_model().objects.filter(pk=user.pk).exists()

    def test_deletes_user_without_records(self, auth_client, user):
        response = auth_client.delete(DELETE_ACCOUNT_URL)

        assert response.status_code == 200
        assert response.json()['success'] is True
        assert not get_user_model().objects.filter(pk=user.pk).exists()

    def test_user_with_records_is_protected_at_db_level(self, user, make_referencial):
        make_referencial()

        with pytest.raises(ProtectedError):
            user.delete()
