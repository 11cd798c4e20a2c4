from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

POR_DEFINIR = 'Por definir'


class Conservador(models.Model):
    id = models.AutoField(primary_key=True, db_column='id')
    nombre = models.CharField(max_length=255, unique=True, db_column='nombre')
    direccion = models.CharField(max_length=255, default=POR_DEFINIR, db_column='direccion')
    comuna = models.CharField(max_length=120, default=POR_DEFINIR, db_column='comuna')
    region = models.CharField(max_length=120, default=POR_DEFINIR, db_column='region')
    telefono = models.CharField(max_length=50, null=True, blank=True, db_column='telefono')
    email = models.EmailField(null=True, blank=True, db_column='email')
    sitioweb = models.URLField(null=True, blank=True, db_column='sitioweb')
    created_at = models.DateTimeField(auto_now_add=True, db_column='created_at')
    updated_at = models.DateTimeField(auto_now=True, db_column='updated_at')

    class Meta:
        db_table = 'conservadores'
        ordering = ['region', 'comuna', 'nombre']

    def __str__(self):
        return self.nombre


class Referencial(models.Model):
    id = models.AutoField(primary_key=True, db_column='id')
    # Inscripción en el conservador: fojas / número / año
    fojas = models.CharField(max_length=50, db_column='fojas')
    numero = models.IntegerField(db_column='numero')
    anio = models.IntegerField(db_column='anio')
    cbr = models.CharField(max_length=255, db_column='cbr')
    comprador = models.CharField(max_length=255, db_column='comprador')
    vendedor = models.CharField(max_length=255, db_column='vendedor')
    predio = models.CharField(max_length=255, db_column='predio')
    comuna = models.CharField(max_length=120, db_index=True, db_column='comuna')
    rol = models.CharField(max_length=50, db_column='rol')
    fechaescritura = models.DateField(db_column='fechaescritura')
    superficie = models.FloatField(validators=[MinValueValidator(0.0)], db_column='superficie')
    monto = models.BigIntegerField(null=True, blank=True, validators=[MinValueValidator(1)], db_column='monto')
    lat = models.FloatField(validators=[MinValueValidator(-90.0), MaxValueValidator(90.0)], db_column='lat')
    lng = models.FloatField(validators=[MinValueValidator(-180.0), MaxValueValidator(180.0)], db_column='lng')
    observaciones = models.TextField(null=True, blank=True, db_column='observaciones')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, models.PROTECT, related_name='referenciales', db_column='user_id'
    )
    conservador = models.ForeignKey(
        Conservador, models.PROTECT, related_name='referenciales', db_column='conservador_id'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_column='created_at')
    updated_at = models.DateTimeField(auto_now=True, db_column='updated_at')

    class Meta:
        db_table = 'referenciales'
        ordering = ['-fechaescritura', '-id']

    def __str__(self):
        return f'{self.cbr} fs. {self.fojas} n° {self.numero} ({self.anio})'
