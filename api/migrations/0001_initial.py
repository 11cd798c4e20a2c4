import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Conservador',
            fields=[
                ('id', models.AutoField(db_column='id', primary_key=True, serialize=False)),
                ('nombre', models.CharField(db_column='nombre', max_length=255, unique=True)),
                ('direccion', models.CharField(db_column='direccion', default='Por definir', max_length=255)),
                ('comuna', models.CharField(db_column='comuna', default='Por definir', max_length=120)),
                ('region', models.CharField(db_column='region', default='Por definir', max_length=120)),
                ('telefono', models.CharField(blank=True, db_column='telefono', max_length=50, null=True)),
                ('email', models.EmailField(blank=True, db_column='email', max_length=254, null=True)),
                ('sitioweb', models.URLField(blank=True, db_column='sitioweb', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_column='created_at')),
                ('updated_at', models.DateTimeField(auto_now=True, db_column='updated_at')),
            ],
            options={
                'db_table': 'conservadores',
                'ordering': ['region', 'comuna', 'nombre'],
            },
        ),
        migrations.CreateModel(
            name='Referencial',
            fields=[
                ('id', models.AutoField(db_column='id', primary_key=True, serialize=False)),
                ('fojas', models.CharField(db_column='fojas', max_length=50)),
                ('numero', models.IntegerField(db_column='numero')),
                ('anio', models.IntegerField(db_column='anio')),
                ('cbr', models.CharField(db_column='cbr', max_length=255)),
                ('comprador', models.CharField(db_column='comprador', max_length=255)),
                ('vendedor', models.CharField(db_column='vendedor', max_length=255)),
                ('predio', models.CharField(db_column='predio', max_length=255)),
                ('comuna', models.CharField(db_column='comuna', db_index=True, max_length=120)),
                ('rol', models.CharField(db_column='rol', max_length=50)),
                ('fechaescritura', models.DateField(db_column='fechaescritura')),
                ('superficie', models.FloatField(db_column='superficie', validators=[django.core.validators.MinValueValidator(0.0)])),
                ('monto', models.BigIntegerField(blank=True, db_column='monto', null=True, validators=[django.core.validators.MinValueValidator(1)])),
                ('lat', models.FloatField(db_column='lat', validators=[django.core.validators.MinValueValidator(-90.0), django.core.validators.MaxValueValidator(90.0)])),
                ('lng', models.FloatField(db_column='lng', validators=[django.core.validators.MinValueValidator(-180.0), django.core.validators.MaxValueValidator(180.0)])),
                ('observaciones', models.TextField(blank=True, db_column='observaciones', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_column='created_at')),
                ('updated_at', models.DateTimeField(auto_now=True, db_column='updated_at')),
                ('conservador', models.ForeignKey(db_column='conservador_id', on_delete=django.db.models.deletion.PROTECT, related_name='referenciales', to='api.conservador')),
                ('user', models.ForeignKey(db_column='user_id', on_delete=django.db.models.deletion.PROTECT, related_name='referenciales', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'referenciales',
                'ordering': ['-fechaescritura', '-id'],
            },
        ),
    ]
