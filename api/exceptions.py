"""Jerarquía de excepciones de la API de referenciales."""


class ReferencialesError(Exception):
    """Base de todos los errores propios de la aplicación."""


class CSVFormatError(ReferencialesError):
    """El archivo no se puede leer como CSV (codificación, filas mal formadas)."""


class CSVValidationError(ReferencialesError):
    """Una o más filas no pasan la validación; trae la lista completa de errores."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__(f'{len(self.errors)} errores de validación en el archivo CSV')


class ImportTransactionError(ReferencialesError):
    """Falló la inserción de una fila; la transacción completa se revirtió."""

    def __init__(self, row, cause):
        self.row = row
        self.cause = cause
        super().__init__(f'Error en la fila {row}: {cause}')


class GeocodingError(ReferencialesError):
    """Base de los errores de geocodificación."""


class InvalidRolError(GeocodingError):
    """Rol o comuna ausentes, o rol con formato distinto de 123-45."""


class GeocodingNotFoundError(GeocodingError):
    """Ninguna estrategia pudo obtener coordenadas."""

    def __init__(self, rol, comuna):
        self.rol = rol
        self.comuna = comuna
        super().__init__(f'No se pudieron obtener coordenadas para rol {rol} en {comuna}')
