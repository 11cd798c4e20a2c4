"""Carga de referenciales desde un CSV local.

Usa el mismo pipeline que el endpoint de carga masiva: detección de
delimitador, validación de todas las filas y una sola transacción.

Uso:
    python manage.py importar_referenciales datos.csv --user admin
"""

from pathlib import Path

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from api import csv_import
from api.exceptions import CSVFormatError, CSVValidationError, ImportTransactionError


class Command(BaseCommand):
    help = 'Importa referenciales desde un archivo CSV (coma o punto y coma).'

    def add_arguments(self, parser):
        parser.add_argument('archivo', help='Ruta al archivo CSV')
        parser.add_argument('--user', required=True, help='Nombre de usuario dueño de los registros')
        parser.add_argument(
            '--solo-validar',
            action='store_true',
            help='Valida el archivo sin importar nada',
        )

    def handle(self, *args, **options):
        path = Path(options['archivo'])
        if not path.exists():
            raise CommandError(f'Archivo no encontrado: {path}')

        User = get_user_model()
        try:
            user = User.objects.get(**{User.USERNAME_FIELD: options['user']})
        except User.DoesNotExist:
            raise CommandError(f"Usuario no encontrado: {options['user']}")

        self.stdout.write(f'🔍 Leyendo datos desde: {path}')
        raw = path.read_bytes()

        if options['solo_validar']:
            self._validar(raw)
            return

        try:
            count = csv_import.process_csv(raw, user)
        except CSVValidationError as e:
            self._reportar_errores(e.errors)
            raise CommandError('El archivo tiene errores de validación; no se importó ningún registro')
        except (CSVFormatError, ImportTransactionError) as e:
            raise CommandError(str(e))

        self.stdout.write(self.style.SUCCESS(f'✅ Carga completa. {count} referenciales importados.'))

    def _validar(self, raw):
        try:
            text = csv_import.decode_csv(raw)
            records = csv_import.parse_csv(text)
        except CSVFormatError as e:
            raise CommandError(str(e))

        errores = csv_import.validate_records(records)
        if errores:
            self._reportar_errores(errores)
            raise CommandError(f'{len(errores)} errores en {len(records)} registros')
        self.stdout.write(self.style.SUCCESS(f'✅ {len(records)} registros válidos.'))

    def _reportar_errores(self, errores):
        self.stderr.write(f'❌ {len(errores)} errores de validación:')
        for error in errores[:50]:
            self.stderr.write(f'    fila {error.row} [{error.field}]: {error.message}')
        if len(errores) > 50:
            self.stderr.write(f'    ... y {len(errores) - 50} más')
