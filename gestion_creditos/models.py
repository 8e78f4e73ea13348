from decimal import Decimal

from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator
from django.core.exceptions import ValidationError
from django.utils import timezone

from .services import fondeo


#? ----- Modelo principal de crédito ----
class Credito(models.Model):
    class EstadoCredito(models.TextChoices):
        BORRADOR = 'draft', 'Borrador'
        EN_FONDEO = 'fundraising', 'En Fondeo'
        ACTIVO = 'active', 'Activo'
        ATRASADO = 'late', 'Atrasado'
        PAGADO = 'paid', 'Pagado'
        EN_MORA = 'defaulted', 'En Mora'
        CANCELADO = 'cancelled', 'Cancelado'

    class TipoPago(models.TextChoices):
        SOLO_INTERES = 'interest_only', 'Solo intereses'
        CAPITAL_E_INTERES = 'principal_and_interest', 'Capital e intereses'

    class TipoInmueble(models.TextChoices):
        CASA = 'casa', 'Casa'
        APARTAMENTO = 'apartamento', 'Apartamento'
        LOCAL = 'local', 'Local comercial'
        LOTE = 'lote', 'Lote'
        OTRO = 'otro', 'Otro'

    ESTADOS_FINALES = (EstadoCredito.PAGADO, EstadoCredito.CANCELADO)

    codigo = models.CharField(max_length=20, unique=True)
    propietario = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='creditos')
    codeudor = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='creditos_como_codeudor'
    )
    estado = models.CharField(max_length=20, choices=EstadoCredito.choices, default=EstadoCredito.BORRADOR)

    #! --- Condiciones financieras ---
    monto_solicitado = models.DecimalField(max_digits=15, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    monto_fondeado = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    tasa_nm = models.DecimalField(max_digits=6, decimal_places=3, default=Decimal('0.000'), help_text="Tasa nominal mensual (%)")
    tasa_ea = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal('0.00'), help_text="Tasa efectiva anual (%)")
    plazo_meses = models.PositiveIntegerField(default=12)
    tipo_pago = models.CharField(max_length=30, choices=TipoPago.choices, default=TipoPago.SOLO_INTERES)
    comision_deudor = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    comision_aluri_pct = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal('0.00'))

    #! --- Garantía inmobiliaria ---
    direccion_inmueble = models.CharField(max_length=255, blank=True)
    ciudad_inmueble = models.CharField(max_length=100, blank=True)
    tipo_inmueble = models.CharField(max_length=20, choices=TipoInmueble.choices, blank=True)
    valor_comercial = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    matricula_inmobiliaria = models.CharField(max_length=50, blank=True)

    #! --- Fechas del flujo ---
    fecha_firma = models.DateField(null=True, blank=True)
    fecha_desembolso = models.DateField(null=True, blank=True)
    fecha_estimada = models.DateField(null=True, blank=True)
    fecha_proximo_pago = models.DateField(null=True, blank=True)
    fecha_creacion = models.DateTimeField(auto_now_add=True)
    fecha_actualizacion = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'loans'
        ordering = ['codigo']
        verbose_name = 'Crédito'
        verbose_name_plural = 'Créditos'

    def __str__(self):
        return f'{self.codigo} - {self.get_estado_display()}'

    @property
    def cupo_disponible(self):
        return fondeo.calcular_cupo_disponible(self.monto_solicitado, self.monto_fondeado)

    @property
    def porcentaje_fondeo(self):
        return fondeo.calcular_porcentaje_fondeo(self.monto_solicitado, self.monto_fondeado)

    @property
    def ltv(self):
        return fondeo.calcular_ltv(self.monto_solicitado, self.valor_comercial)

    @property
    def dias_en_mora(self):
        if self.estado in (self.EstadoCredito.ATRASADO, self.EstadoCredito.EN_MORA) and self.fecha_proximo_pago:
            dias = (timezone.localdate() - self.fecha_proximo_pago).days
            return dias if dias > 0 else 0
        return 0

    def save(self, *args, **kwargs):
        #? Un crédito pagado o cancelado no puede volver a otro estado.
        if self.pk:
            estado_anterior = Credito.objects.filter(pk=self.pk).values_list('estado', flat=True).first()
            if estado_anterior in self.ESTADOS_FINALES and self.estado != estado_anterior:
                raise ValidationError(
                    f'Un crédito en estado "{Credito.EstadoCredito(estado_anterior).label}" no puede cambiar a otro estado.'
                )
        super().save(*args, **kwargs)


#? ----- Codeudores registrados al crear el crédito -----
class Codeudor(models.Model):
    credito = models.ForeignKey(Credito, on_delete=models.CASCADE, related_name='codeudores')
    nombre_completo = models.CharField(max_length=150)
    documento_identidad = models.CharField(max_length=20)
    email = models.EmailField(blank=True)
    telefono = models.CharField(max_length=20, blank=True)
    fecha_creacion = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'loan_cosigners'
        verbose_name = 'Codeudor'
        verbose_name_plural = 'Codeudores'

    def __str__(self):
        return f"{self.nombre_completo} ({self.documento_identidad})"


#? ----- Inversiones de los inversionistas sobre un crédito -----
class Inversion(models.Model):
    class EstadoInversion(models.TextChoices):
        PENDIENTE_PAGO = 'pending_payment', 'Pendiente de pago'
        CONFIRMADA = 'confirmed', 'Confirmada'
        RECHAZADA = 'rejected', 'Rechazada'

    credito = models.ForeignKey(Credito, on_delete=models.PROTECT, related_name='inversiones')
    inversionista = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='inversiones')
    monto_invertido = models.DecimalField(max_digits=15, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    tasa_inversionista = models.DecimalField(
        max_digits=6, decimal_places=2, null=True, blank=True,
        help_text="Tasa EA pactada con el inversionista, si difiere de la del crédito."
    )
    estado = models.CharField(max_length=20, choices=EstadoInversion.choices, default=EstadoInversion.PENDIENTE_PAGO)
    fecha_creacion = models.DateTimeField(default=timezone.now)
    fecha_confirmacion = models.DateTimeField(null=True, blank=True)
    procesado_por = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='inversiones_procesadas'
    )
    nota_admin = models.TextField(blank=True)

    class Meta:
        db_table = 'investments'
        ordering = ['-fecha_creacion']
        verbose_name = 'Inversión'
        verbose_name_plural = 'Inversiones'

    def __str__(self):
        return f"{self.credito.codigo} - {self.inversionista} - ${self.monto_invertido:,.0f}"

    @property
    def tasa_efectiva(self):
        return self.tasa_inversionista if self.tasa_inversionista is not None else self.credito.tasa_ea


#? ----- Libro de pagos del crédito (solo se agregan registros) -----
class PagoCredito(models.Model):
    credito = models.ForeignKey(Credito, on_delete=models.PROTECT, related_name='pagos')
    fecha_pago = models.DateField()
    monto_capital = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    monto_interes = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    monto_mora = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    monto_total = models.DecimalField(max_digits=15, decimal_places=2, editable=False)
    notas = models.TextField(blank=True)
    registrado_por = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='pagos_registrados'
    )
    fecha_registro = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'loan_payments'
        ordering = ['-fecha_pago', '-id']
        verbose_name = 'Pago de crédito'
        verbose_name_plural = 'Pagos de créditos'

    def __str__(self):
        return f"Pago {self.credito.codigo} {self.fecha_pago} - ${self.monto_total:,.0f}"

    def save(self, *args, **kwargs):
        #? Los pagos registrados son inmutables; las correcciones se hacen con un nuevo registro.
        if self.pk:
            raise ValidationError('Un pago registrado no puede modificarse.')
        self.monto_total = self.monto_capital + self.monto_interes + self.monto_mora
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError('Un pago registrado no puede eliminarse.')
