"""Normalización de textos para comparar nombres de comunas y conservadores.

Los nombres llegan escritos de muchas formas ("Valparaiso", "VALPARAÍSO",
" valparaíso "). Antes de comparar los llevamos a una forma canónica: sin
acentos, en mayúsculas y con un solo espacio entre palabras. Cuando no hay
coincidencia exacta se usa la razón de Levenshtein como medida de parecido.
"""

import re
import unicodedata

import Levenshtein


def norm_str(s):
    """Limpia un texto para comparación: quita acentos, convierte a mayúsculas y elimina espacios extra."""
    if s is None:
        return ''
    s2 = str(s).upper().strip()
    s2 = unicodedata.normalize('NFKD', s2)
    s2 = ''.join(ch for ch in s2 if not unicodedata.combining(ch))
    s2 = re.sub(r'\s+', ' ', s2)
    return s2


def similitud(texto1, texto2):
    """Parecido entre dos textos normalizados, de 0 a 1."""
    return Levenshtein.ratio(norm_str(texto1), norm_str(texto2))


def buscar_mejor_coincidencia(texto, opciones, umbral=0.85):
    """Encuentra la opción que más se parece al texto dado.

    Primero busca coincidencia exacta (normalizada); si no la hay, devuelve
    la opción más similar que supere el umbral, o None.
    """
    if not texto or not opciones:
        return None

    texto_norm = norm_str(texto)
    for opcion in opciones:
        if norm_str(opcion) == texto_norm:
            return opcion

    mejor_coincidencia = None
    mejor_puntaje = 0
    for opcion in opciones:
        puntaje = similitud(texto, opcion)
        if puntaje > mejor_puntaje and puntaje >= umbral:
            mejor_puntaje = puntaje
            mejor_coincidencia = opcion
    return mejor_coincidencia


def extraer_nombre_conservador(valor_cbr):
    """'cbr=Nueva Imperial' -> 'Nueva Imperial'; cualquier otro valor se devuelve recortado."""
    valor = str(valor_cbr or '')
    if '=' in valor:
        return valor.split('=', 1)[1].strip()
    return valor.strip()
