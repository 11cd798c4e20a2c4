from django.utils import timezone
from rest_framework import serializers

from .csv_import import resolve_conservador
from .models import Conservador, Referencial
from .normalization import extraer_nombre_conservador


def formatear_monto(monto):
    """Monto en pesos chilenos: 50000000 -> '$50.000.000'."""
    if monto is None:
        return 'No disponible'
    return '$' + f'{int(monto):,}'.replace(',', '.')


def formatear_fecha(fecha):
    """Fecha en formato es-CL: dd-mm-aaaa."""
    if not fecha:
        return 'No disponible'
    return fecha.strftime('%d-%m-%Y')


class ConservadorSerializer(serializers.ModelSerializer):
    class Meta:
        model = Conservador
        fields = ['id', 'nombre', 'direccion', 'comuna', 'region', 'telefono', 'email', 'sitioweb']


class ReferencialSerializer(serializers.ModelSerializer):
    # El conservador se resuelve a partir del nombre en `cbr`
    conservador = ConservadorSerializer(read_only=True)
    userId = serializers.PrimaryKeyRelatedField(source='user', read_only=True)

    class Meta:
        model = Referencial
        fields = [
            'id', 'lat', 'lng', 'fojas', 'numero', 'anio', 'cbr',
            'comprador', 'vendedor', 'predio', 'comuna', 'rol',
            'fechaescritura', 'superficie', 'monto', 'observaciones',
            'userId', 'conservador', 'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate_cbr(self, value):
        nombre = extraer_nombre_conservador(value)
        if not nombre:
            raise serializers.ValidationError('Campo obligatorio cbr faltante')
        return nombre

    def validate_superficie(self, value):
        if value <= 0:
            raise serializers.ValidationError('La superficie debe ser mayor a 0')
        return value

    def validate_monto(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError('El monto debe ser mayor a 0')
        return value

    def validate_fechaescritura(self, value):
        if value > timezone.localdate():
            raise serializers.ValidationError('La fecha de escritura no puede ser futura')
        return value

    def create(self, validated_data):
        validated_data['conservador'] = resolve_conservador(validated_data['cbr'], validated_data.get('comuna'))
        validated_data['user'] = self.context['request'].user
        return super().create(validated_data)

    def update(self, instance, validated_data):
        cbr = validated_data.get('cbr')
        if cbr and cbr != instance.cbr:
            validated_data['conservador'] = resolve_conservador(
                cbr, validated_data.get('comuna', instance.comuna)
            )
        return super().update(instance, validated_data)


class PublicMapPointSerializer(serializers.Serializer):
    """
    Punto del mapa público. Los campos se listan uno a uno: comprador,
    vendedor y el usuario dueño del registro nunca se exponen.
    """
    id = serializers.IntegerField()
    lat = serializers.FloatField()
    lng = serializers.FloatField()
    fojas = serializers.CharField()
    numero = serializers.IntegerField()
    anio = serializers.IntegerField()
    cbr = serializers.CharField()
    predio = serializers.CharField()
    comuna = serializers.CharField()
    rol = serializers.CharField()
    fechaescritura = serializers.SerializerMethodField()
    superficie = serializers.FloatField()
    monto = serializers.SerializerMethodField()
    observaciones = serializers.CharField()

    def get_fechaescritura(self, obj):
        return formatear_fecha(obj.fechaescritura) if obj.fechaescritura else None

    def get_monto(self, obj):
        return formatear_monto(obj.monto) if obj.monto else None

    def to_representation(self, instance):
        data = super().to_representation(instance)
        # Campos opcionales vacíos se omiten
        return {key: value for key, value in data.items() if value not in (None, '')}


class TopComunaSerializer(serializers.Serializer):
    comuna = serializers.CharField()
    count = serializers.IntegerField()
