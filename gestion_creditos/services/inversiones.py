"""
Ciclo de vida de las inversiones: creación y resolución por tesorería.

Toda operación que compara un monto contra el cupo del crédito bloquea la fila
del crédito (``select_for_update``) dentro de la misma transacción en la que
escribe. Así dos inversiones simultáneas sobre el mismo crédito se validan una
después de la otra y nunca contra una lectura vieja del cupo.
"""
import logging
from decimal import Decimal

from dateutil.relativedelta import relativedelta
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Sum
from django.shortcuts import get_object_or_404
from django.utils import timezone

from gestion_creditos import email_service
from gestion_creditos.models import Credito, Inversion
from . import fondeo
from .estados import cambiar_estado_credito, es_transicion_inversion_valida

logger = logging.getLogger(__name__)


def crear_inversion(credito_id, inversionista, monto, exigir_fondeo=True, tasa_inversionista=None, fecha_creacion=None):
    """
    Reserva una inversión en estado ``pending_payment``.

    Args:
        credito_id: Crédito sobre el que se invierte.
        inversionista: Usuario que invierte.
        monto: Monto a invertir.
        exigir_fondeo: Si es True el crédito debe estar en fondeo (flujo del
            marketplace). El ingreso manual del administrador solo valida el cupo.
        tasa_inversionista: Tasa EA pactada, si difiere de la del crédito.
        fecha_creacion: Fecha de la inversión cuando se registra a posteriori.

    Raises:
        ValidationError: si el crédito no admite inversiones o el monto excede el cupo.
    """
    with transaction.atomic():
        credito = get_object_or_404(Credito.objects.select_for_update(), pk=credito_id)

        if exigir_fondeo and credito.estado != Credito.EstadoCredito.EN_FONDEO:
            raise ValidationError('Esta oportunidad ya no está disponible para inversión.')

        monto = fondeo.validar_monto_inversion(monto, credito.cupo_disponible)

        inversion = Inversion.objects.create(
            credito=credito,
            inversionista=inversionista,
            monto_invertido=monto,
            tasa_inversionista=tasa_inversionista,
            estado=Inversion.EstadoInversion.PENDIENTE_PAGO,
            fecha_creacion=fecha_creacion or timezone.now(),
        )

    logger.info(
        f"Inversión {inversion.id} reservada: {fondeo.formatear_cop(monto)} en {credito.codigo} "
        f"por usuario {inversionista.id}"
    )
    return inversion


def _activar_credito_fondeado(credito):
    hoy = timezone.localdate()
    cambiar_estado_credito(credito, Credito.EstadoCredito.ACTIVO)
    credito.fecha_firma = credito.fecha_firma or hoy
    credito.fecha_desembolso = credito.fecha_desembolso or hoy
    credito.fecha_proximo_pago = credito.fecha_desembolso + relativedelta(months=1)
    logger.info(f"Crédito {credito.codigo} fondeado al 100%, pasa a {credito.get_estado_display()}")


def confirmar_inversion(inversion_id, usuario_admin, nota=''):
    """
    Confirma una inversión pendiente y suma su monto al fondeo del crédito en
    la misma transacción.

    Si el crédito queda fondeado por completo y estaba en fondeo, pasa a activo.

    Raises:
        ValidationError: si la inversión ya fue procesada o si su monto ya no
            cabe en el cupo disponible del crédito.
    """
    with transaction.atomic():
        inversion = get_object_or_404(Inversion.objects.select_for_update(), pk=inversion_id)

        if not es_transicion_inversion_valida(inversion.estado, Inversion.EstadoInversion.CONFIRMADA):
            raise ValidationError(f'La inversión ya fue procesada ({inversion.get_estado_display()}).')

        credito = Credito.objects.select_for_update().get(pk=inversion.credito_id)
        cupo = credito.cupo_disponible
        if inversion.monto_invertido > cupo:
            raise ValidationError(
                f'No se puede confirmar: la inversión excede el cupo disponible. '
                f'Cupo restante: {fondeo.formatear_cop(max(cupo, Decimal("0")))}'
            )

        inversion.estado = Inversion.EstadoInversion.CONFIRMADA
        inversion.fecha_confirmacion = timezone.now()
        inversion.procesado_por = usuario_admin
        inversion.nota_admin = nota or 'Pago verificado por tesorería'
        inversion.save(update_fields=['estado', 'fecha_confirmacion', 'procesado_por', 'nota_admin'])

        credito.monto_fondeado += inversion.monto_invertido
        if credito.cupo_disponible <= 0 and credito.estado == Credito.EstadoCredito.EN_FONDEO:
            _activar_credito_fondeado(credito)
        credito.save()

    logger.info(
        f"Inversión {inversion.id} confirmada por {usuario_admin}: "
        f"{credito.codigo} fondeado {fondeo.formatear_cop(credito.monto_fondeado)}"
    )
    email_service.enviar_notificacion_inversion(inversion)
    return inversion


def rechazar_inversion(inversion_id, usuario_admin, motivo=''):
    """Rechaza una inversión pendiente. El fondeo del crédito no cambia."""
    with transaction.atomic():
        inversion = get_object_or_404(Inversion.objects.select_for_update(), pk=inversion_id)

        if not es_transicion_inversion_valida(inversion.estado, Inversion.EstadoInversion.RECHAZADA):
            raise ValidationError(f'La inversión ya fue procesada ({inversion.get_estado_display()}).')

        inversion.estado = Inversion.EstadoInversion.RECHAZADA
        inversion.procesado_por = usuario_admin
        inversion.nota_admin = (motivo or '').strip() or 'Sin motivo especificado'
        inversion.save(update_fields=['estado', 'procesado_por', 'nota_admin'])

    logger.info(f"Inversión {inversion.id} rechazada por {usuario_admin}: {inversion.nota_admin}")
    email_service.enviar_notificacion_inversion(inversion)
    return inversion


def obtener_inversiones_pendientes():
    return Inversion.objects.filter(
        estado=Inversion.EstadoInversion.PENDIENTE_PAGO
    ).select_related('credito', 'inversionista', 'inversionista__perfil').order_by('fecha_creacion')


def calcular_total_confirmado(credito):
    """Suma de las inversiones confirmadas del crédito, según el libro de inversiones."""
    total = credito.inversiones.filter(
        estado=Inversion.EstadoInversion.CONFIRMADA
    ).aggregate(total=Sum('monto_invertido'))['total']
    return total or Decimal('0.00')
