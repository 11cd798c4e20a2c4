import pytest

from api.normalization import (
    buscar_mejor_coincidencia,
    extraer_nombre_conservador,
    norm_str,
    similitud,
)


def test_norm_str():
    assert norm_str('  Valparaíso   de  Chile ') == 'VALPARAISO DE CHILE'
    assert norm_str(None) == ''


def test_similitud_ignores_accents_and_case():
    assert similitud('concepción', 'CONCEPCION') == 1.0
    assert similitud('Temuco', 'Osorno') < 0.5


@pytest.mark.parametrize('texto,esperado', [
    ('chillan', 'Chillán'),
    ('Puerto Mont', 'Puerto Montt'),
    ('Comuna Inventada', None),
    ('', None),
])
def test_buscar_mejor_coincidencia(texto, esperado):
    opciones = ['Chillán', 'Puerto Montt', 'Punta Arenas', 'Santiago']
    assert buscar_mejor_coincidencia(texto, opciones) == esperado


@pytest.mark.parametrize('valor,esperado', [
    ('cbr=Nueva Imperial', 'Nueva Imperial'),
    ('Nueva Imperial ', 'Nueva Imperial'),
    ('cbr= Temuco', 'Temuco'),
    (None, ''),
])
def test_extraer_nombre_conservador(valor, esperado):
    assert extraer_nombre_conservador(valor) == esperado
