from decimal import Decimal
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Credito',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('codigo', models.CharField(max_length=20, unique=True)),
                ('estado', models.CharField(choices=[('draft', 'Borrador'), ('fundraising', 'En Fondeo'), ('active', 'Activo'), ('late', 'Atrasado'), ('paid', 'Pagado'), ('defaulted', 'En Mora'), ('cancelled', 'Cancelado')], default='draft', max_length=20)),
                ('monto_solicitado', models.DecimalField(decimal_places=2, max_digits=15, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('monto_fondeado', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('tasa_nm', models.DecimalField(decimal_places=3, default=Decimal('0.000'), help_text='Tasa nominal mensual (%)', max_digits=6)),
                ('tasa_ea', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Tasa efectiva anual (%)', max_digits=6)),
                ('plazo_meses', models.PositiveIntegerField(default=12)),
                ('tipo_pago', models.CharField(choices=[('interest_only', 'Solo intereses'), ('principal_and_interest', 'Capital e intereses')], default='interest_only', max_length=30)),
                ('comision_deudor', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('comision_aluri_pct', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=6)),
                ('direccion_inmueble', models.CharField(blank=True, max_length=255)),
                ('ciudad_inmueble', models.CharField(blank=True, max_length=100)),
                ('tipo_inmueble', models.CharField(blank=True, choices=[('casa', 'Casa'), ('apartamento', 'Apartamento'), ('local', 'Local comercial'), ('lote', 'Lote'), ('otro', 'Otro')], max_length=20)),
                ('valor_comercial', models.DecimalField(blank=True, decimal_places=2, max_digits=15, null=True)),
                ('matricula_inmobiliaria', models.CharField(blank=True, max_length=50)),
                ('fecha_firma', models.DateField(blank=True, null=True)),
                ('fecha_desembolso', models.DateField(blank=True, null=True)),
                ('fecha_estimada', models.DateField(blank=True, null=True)),
                ('fecha_proximo_pago', models.DateField(blank=True, null=True)),
                ('fecha_creacion', models.DateTimeField(auto_now_add=True)),
                ('fecha_actualizacion', models.DateTimeField(auto_now=True)),
                ('codeudor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='creditos_como_codeudor', to=settings.AUTH_USER_MODEL)),
                ('propietario', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='creditos', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Crédito',
                'verbose_name_plural': 'Créditos',
                'db_table': 'loans',
                'ordering': ['codigo'],
            },
        ),
        migrations.CreateModel(
            name='Codeudor',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('nombre_completo', models.CharField(max_length=150)),
                ('documento_identidad', models.CharField(max_length=20)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('telefono', models.CharField(blank=True, max_length=20)),
                ('fecha_creacion', models.DateTimeField(auto_now_add=True)),
                ('credito', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='codeudores', to='gestion_creditos.credito')),
            ],
            options={
                'verbose_name': 'Codeudor',
                'verbose_name_plural': 'Codeudores',
                'db_table': 'loan_cosigners',
            },
        ),
        migrations.CreateModel(
            name='Inversion',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('monto_invertido', models.DecimalField(decimal_places=2, max_digits=15, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('tasa_inversionista', models.DecimalField(blank=True, decimal_places=2, help_text='Tasa EA pactada con el inversionista, si difiere de la del crédito.', max_digits=6, null=True)),
                ('estado', models.CharField(choices=[('pending_payment', 'Pendiente de pago'), ('confirmed', 'Confirmada'), ('rejected', 'Rechazada')], default='pending_payment', max_length=20)),
                ('fecha_creacion', models.DateTimeField(default=django.utils.timezone.now)),
                ('fecha_confirmacion', models.DateTimeField(blank=True, null=True)),
                ('nota_admin', models.TextField(blank=True)),
                ('credito', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='inversiones', to='gestion_creditos.credito')),
                ('inversionista', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='inversiones', to=settings.AUTH_USER_MODEL)),
                ('procesado_por', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='inversiones_procesadas', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Inversión',
                'verbose_name_plural': 'Inversiones',
                'db_table': 'investments',
                'ordering': ['-fecha_creacion'],
            },
        ),
        migrations.CreateModel(
            name='PagoCredito',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('fecha_pago', models.DateField()),
                ('monto_capital', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('monto_interes', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('monto_mora', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('monto_total', models.DecimalField(decimal_places=2, editable=False, max_digits=15)),
                ('notas', models.TextField(blank=True)),
                ('fecha_registro', models.DateTimeField(auto_now_add=True)),
                ('credito', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='pagos', to='gestion_creditos.credito')),
                ('registrado_por', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='pagos_registrados', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Pago de crédito',
                'verbose_name_plural': 'Pagos de créditos',
                'db_table': 'loan_payments',
                'ordering': ['-fecha_pago', '-id'],
            },
        ),
    ]
