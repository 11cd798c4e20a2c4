"""Pytest configuration and fixtures."""

from datetime import date

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from api.csv_import import CSV_COLUMNS
from api.models import Conservador, Referencial


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(username='tasador', password='clave-segura-123')


@pytest.fixture
def other_user(db):
    return get_user_model().objects.create_user(username='perito', password='clave-segura-456')


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def auth_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def valid_row():
    """Fila CSV completa y válida, todos los valores como texto."""
    return {
        'lat': '-39.851241',
        'lng': '-73.215171',
        'fojas': '100',
        'numero': '123',
        'anio': '2024',
        'cbr': 'Nueva Imperial',
        'comprador': 'Ana Compradora',
        'vendedor': 'Juan Vendedor',
        'predio': 'Fundo El Ejemplo',
        'comuna': 'Nueva Imperial',
        'rol': '123-45',
        'fechaescritura': '2024-03-21',
        'superficie': '5000',
        'monto': '50000000',
        'observaciones': 'Deslinde Norte: estero',
    }


@pytest.fixture
def make_csv():
    def _make(rows, delimiter=','):
        lines = [delimiter.join(CSV_COLUMNS)]
        for row in rows:
            lines.append(delimiter.join(row.get(column, '') for column in CSV_COLUMNS))
        return '\n'.join(lines) + '\n'
    return _make


@pytest.fixture
def conservador(db):
    return Conservador.objects.create(nombre='Santiago', comuna='Santiago', region='Metropolitana')


@pytest.fixture
def make_referencial(user, conservador):
    def _make(**overrides):
        data = {
            'lat': -33.45,
            'lng': -70.66,
            'fojas': '100',
            'numero': 1,
            'anio': 2023,
            'cbr': 'Santiago',
            'comprador': 'Ana Rivera',
            'vendedor': 'Carlos Mendoza',
            'predio': 'Lote 1',
            'comuna': 'Santiago',
            'rol': '123-45',
            'fechaescritura': date(2023, 5, 10),
            'superficie': 120.5,
            'monto': 50000000,
            'observaciones': 'Sin observaciones',
            'user': user,
            'conservador': conservador,
        }
        data.update(overrides)
        return Referencial.objects.create(**data)
    return _make
