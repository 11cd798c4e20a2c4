"""Carga masiva de referenciales desde CSV.

El flujo es: decodificar el archivo -> detectar delimitador -> parsear con
pandas -> validar todas las filas -> importar dentro de una única
transacción. Si cualquier fila es inválida no se importa nada; si falla la
inserción de una fila se revierte todo el archivo, incluidos los
conservadores creados durante la carga.
"""

import io
import logging
import math
import re
from dataclasses import asdict, dataclass
from datetime import datetime

import pandas as pd
from django.db import DatabaseError, transaction
from django.utils import timezone

from .exceptions import CSVFormatError, CSVValidationError, ImportTransactionError
from .models import POR_DEFINIR, Conservador, Referencial
from .normalization import extraer_nombre_conservador

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    'lat', 'lng', 'fojas', 'numero', 'anio', 'cbr',
    'comprador', 'vendedor', 'predio', 'comuna', 'rol',
    'fechaescritura', 'superficie', 'monto', 'observaciones',
]

REQUIRED_FIELDS = [
    'lat', 'lng', 'fojas', 'numero', 'anio', 'cbr',
    'comprador', 'vendedor', 'predio', 'comuna', 'rol',
    'fechaescritura', 'superficie', 'monto',
]

TEMPLATE_EXAMPLE_ROW = [
    '-39.851241', '-73.215171', '100', '123', '2024', 'Nueva Imperial',
    'Ana Compradora', 'Juan Vendedor', 'Fundo El Ejemplo', 'Nueva Imperial',
    '123-45', '2024-03-21', '5000', '50000000', 'Deslinde Norte: Río Ejemplo',
]

FORMATOS_FECHA = ['%Y-%m-%d', '%d-%m-%Y', '%d/%m/%Y', '%Y/%m/%d']

_FLOAT_RE = re.compile(r'^[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)$')
_INT_RE = re.compile(r'^[+-]?[0-9]+$')

BOM = '\ufeff'

# Límites de las columnas en la base de datos
MAX_INTEGER = 2 ** 31 - 1
MAX_BIGINT = 2 ** 63 - 1
TEXT_FIELDS = ['fojas', 'cbr', 'comprador', 'vendedor', 'predio', 'comuna', 'rol']


@dataclass
class RowValidationError:
    row: int
    field: str
    message: str

    def as_dict(self):
        return asdict(self)


def parse_float(raw):
    if raw is None or not _FLOAT_RE.match(raw):
        return None
    return float(raw)


def parse_int(raw):
    if raw is None or not _INT_RE.match(raw):
        return None
    return int(raw)


def parse_fecha(raw):
    """Fecha de escritura en YYYY-MM-DD (también DD-MM-YYYY y DD/MM/YYYY)."""
    if not raw:
        return None
    for formato in FORMATOS_FECHA:
        try:
            return datetime.strptime(raw, formato).date()
        except ValueError:
            continue
    return None


# (campo, parser, etiqueta del mensaje)
TYPE_RULES = [
    ('lat', parse_float, 'Latitud inválida'),
    ('lng', parse_float, 'Longitud inválida'),
    ('numero', parse_int, 'Número inválido'),
    ('anio', parse_int, 'Año inválido'),
    ('superficie', parse_float, 'Superficie inválida'),
    ('monto', parse_int, 'Monto inválido'),
    ('fechaescritura', parse_fecha, 'Fecha inválida'),
]


def detect_delimiter(text):
    """';' si en la primera línea hay más puntos y coma que comas, si no ','."""
    first_line = text.split('\n', 1)[0]
    comma_count = first_line.count(',')
    semicolon_count = first_line.count(';')
    return ';' if semicolon_count > comma_count else ','


def decode_csv(raw):
    """Bytes subidos -> texto, sin BOM."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise CSVFormatError('El archivo CSV debe estar codificado en UTF-8') from e
    return raw.lstrip(BOM)


def parse_csv(text, delimiter=None):
    """Lee el CSV como lista de diccionarios columna -> texto recortado.

    Todos los valores se leen como texto, sin conversión a NaN; las líneas
    vacías se omiten.
    """
    text = text.lstrip(BOM)
    if not text.strip():
        return []
    if delimiter is None:
        delimiter = detect_delimiter(text)

    try:
        df = pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            index_col=False,
        )
    except pd.errors.EmptyDataError:
        return []
    except (pd.errors.ParserError, ValueError) as e:
        raise CSVFormatError(f'El archivo CSV está mal formado: {e}') from e

    df.columns = [str(c).strip() for c in df.columns]
    df = df.fillna('')
    df = df.apply(lambda col: col.astype(str).str.strip())
    return df.to_dict(orient='records')


def _valor(record, field):
    value = record.get(field)
    if value is None:
        return ''
    return str(value).strip()


def validate_record(record, row):
    """Errores de una fila: obligatorios, tipos y rangos. No se detiene en el primero."""
    errores = []
    valores = {field: _valor(record, field) for field in CSV_COLUMNS}
    valores['cbr'] = extraer_nombre_conservador(valores['cbr'])

    for field in REQUIRED_FIELDS:
        # '0' no está vacío: cuenta como presente
        if valores[field] == '':
            errores.append(RowValidationError(
                row=row,
                field=field,
                message=f'Campo obligatorio {field} faltante en fila {row}',
            ))

    parsed = {}
    for field, parser, etiqueta in TYPE_RULES:
        raw = valores[field]
        if not raw:
            continue
        value = parser(raw)
        if value is None:
            message = f'{etiqueta} en fila {row}: "{raw}"'
            if field == 'fechaescritura':
                message += '. Formato esperado: YYYY-MM-DD'
            errores.append(RowValidationError(row=row, field=field, message=message))
        else:
            parsed[field] = value

    errores.extend(_validar_rangos(parsed, valores, row))
    errores.extend(_validar_largos(valores, row))
    return errores


def _validar_rangos(parsed, valores, row):
    errores = []

    def agregar(field, texto):
        errores.append(RowValidationError(
            row=row,
            field=field,
            message=f'{texto} en fila {row}: "{valores[field]}"',
        ))

    if 'lat' in parsed and not -90 <= parsed['lat'] <= 90:
        agregar('lat', 'Latitud fuera de rango (-90 a 90)')
    if 'lng' in parsed and not -180 <= parsed['lng'] <= 180:
        agregar('lng', 'Longitud fuera de rango (-180 a 180)')
    if 'superficie' in parsed:
        if parsed['superficie'] <= 0:
            agregar('superficie', 'La superficie debe ser mayor a 0')
        elif not math.isfinite(parsed['superficie']):
            agregar('superficie', 'Superficie fuera de rango')
    if 'monto' in parsed:
        if parsed['monto'] <= 0:
            agregar('monto', 'El monto debe ser mayor a 0')
        elif parsed['monto'] > MAX_BIGINT:
            agregar('monto', 'Monto fuera de rango')
    if 'numero' in parsed and not -MAX_INTEGER - 1 <= parsed['numero'] <= MAX_INTEGER:
        agregar('numero', 'Número fuera de rango')
    if 'anio' in parsed and not -MAX_INTEGER - 1 <= parsed['anio'] <= MAX_INTEGER:
        agregar('anio', 'Año fuera de rango')
    if 'fechaescritura' in parsed and parsed['fechaescritura'] > timezone.localdate():
        agregar('fechaescritura', 'La fecha de escritura no puede ser futura')
    return errores


def _validar_largos(valores, row):
    """Textos que no caben en su columna."""
    errores = []
    for field in TEXT_FIELDS:
        max_length = Referencial._meta.get_field(field).max_length
        if len(valores[field]) > max_length:
            errores.append(RowValidationError(
                row=row,
                field=field,
                message=f'El campo {field} excede {max_length} caracteres en fila {row}',
            ))
    return errores


def validate_records(records):
    """Valida todas las filas (numeradas desde 1, sin contar el encabezado)."""
    errores = []
    for row, record in enumerate(records, start=1):
        errores.extend(validate_record(record, row))
    return errores


def build_referencial_data(record, nombre_conservador):
    """Convierte una fila ya validada a los tipos del modelo."""
    observaciones = _valor(record, 'observaciones')
    return {
        'lat': float(_valor(record, 'lat')),
        'lng': float(_valor(record, 'lng')),
        'fojas': _valor(record, 'fojas'),
        'numero': int(_valor(record, 'numero')),
        'anio': int(_valor(record, 'anio')),
        'cbr': nombre_conservador,
        'comprador': _valor(record, 'comprador'),
        'vendedor': _valor(record, 'vendedor'),
        'predio': _valor(record, 'predio'),
        'comuna': _valor(record, 'comuna'),
        'rol': _valor(record, 'rol'),
        'fechaescritura': parse_fecha(_valor(record, 'fechaescritura')),
        'superficie': float(_valor(record, 'superficie')),
        'monto': int(_valor(record, 'monto')),
        'observaciones': observaciones or None,
    }


def resolve_conservador(nombre, comuna):
    """Busca el conservador por nombre o lo crea con datos provisorios.

    get_or_create sobre la columna única `nombre`: si otra carga lo crea en
    paralelo, el IntegrityError se resuelve releyendo la fila.
    """
    conservador, created = Conservador.objects.get_or_create(
        nombre=nombre,
        defaults={
            'direccion': POR_DEFINIR,
            'comuna': comuna or POR_DEFINIR,
            'region': POR_DEFINIR,
        },
    )
    if created:
        logger.info('Conservador creado durante la carga: %s', nombre)
    return conservador


def import_records(records, user):
    """Inserta todas las filas en una sola transacción y devuelve cuántas se crearon."""
    creados = 0
    conservadores = {}
    with transaction.atomic():
        for row, record in enumerate(records, start=1):
            try:
                nombre = extraer_nombre_conservador(_valor(record, 'cbr'))
                conservador = conservadores.get(nombre)
                if conservador is None:
                    conservador = resolve_conservador(nombre, _valor(record, 'comuna'))
                    conservadores[nombre] = conservador
                Referencial.objects.create(
                    user=user,
                    conservador=conservador,
                    **build_referencial_data(record, nombre),
                )
            except (DatabaseError, ValueError, TypeError, OverflowError) as e:
                logger.error('Error importando fila %s: %s', row, e)
                raise ImportTransactionError(row, e) from e
            creados += 1
    return creados


def process_csv(raw, user):
    """Pipeline completo: decodificar, parsear, validar e importar.

    Lanza CSVFormatError, CSVValidationError o ImportTransactionError.
    """
    text = decode_csv(raw)
    delimiter = detect_delimiter(text)
    logger.info('Detectado delimitador: %s', delimiter)

    records = parse_csv(text, delimiter)
    if not records:
        raise CSVFormatError('El archivo CSV no contiene registros')

    errores = validate_records(records)
    if errores:
        logger.warning('CSV rechazado: %s errores de validación en %s filas', len(errores), len(records))
        raise CSVValidationError(errores)

    count = import_records(records, user)
    logger.info('Importados %s referenciales para el usuario %s', count, user.pk)
    return count


def generate_template(delimiter=',', bom=False):
    """Plantilla descargable: encabezado + una fila de ejemplo."""
    content = delimiter.join(CSV_COLUMNS) + '\n' + delimiter.join(TEMPLATE_EXAMPLE_ROW)
    if bom:
        content = BOM + content
    return content


def _celda(value):
    if value is None:
        return ''
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return str(value)


def export_csv(queryset, delimiter=',', bom=False):
    """Referenciales en el mismo formato de columnas que acepta la carga masiva."""
    filas = [[_celda(v) for v in valores] for valores in queryset.values_list(*CSV_COLUMNS)]
    df = pd.DataFrame(filas, columns=CSV_COLUMNS, dtype=str)
    content = df.to_csv(sep=delimiter, index=False, lineterminator='\n')
    if bom:
        content = BOM + content
    return content
