from django.core.exceptions import ValidationError

from gestion_creditos.models import Credito, Inversion


# Mapa de transiciones permitidas para el ciclo de vida del crédito.
ALLOWED_CREDITO_TRANSITIONS = {
    Credito.EstadoCredito.BORRADOR: {
        Credito.EstadoCredito.EN_FONDEO,
        Credito.EstadoCredito.CANCELADO,
    },
    Credito.EstadoCredito.EN_FONDEO: {
        Credito.EstadoCredito.ACTIVO,
        Credito.EstadoCredito.CANCELADO,
    },
    Credito.EstadoCredito.ACTIVO: {
        Credito.EstadoCredito.ATRASADO,
        Credito.EstadoCredito.EN_MORA,
        Credito.EstadoCredito.PAGADO,
    },
    Credito.EstadoCredito.ATRASADO: {
        Credito.EstadoCredito.ACTIVO,
        Credito.EstadoCredito.EN_MORA,
        Credito.EstadoCredito.PAGADO,
    },
    Credito.EstadoCredito.EN_MORA: {
        Credito.EstadoCredito.ACTIVO,
        Credito.EstadoCredito.PAGADO,
    },
    Credito.EstadoCredito.PAGADO: set(),
    Credito.EstadoCredito.CANCELADO: set(),
}

# Una inversión solo se resuelve una vez: confirmada o rechazada.
ALLOWED_INVERSION_TRANSITIONS = {
    Inversion.EstadoInversion.PENDIENTE_PAGO: {
        Inversion.EstadoInversion.CONFIRMADA,
        Inversion.EstadoInversion.RECHAZADA,
    },
    Inversion.EstadoInversion.CONFIRMADA: set(),
    Inversion.EstadoInversion.RECHAZADA: set(),
}


def es_transicion_credito_valida(estado_actual, estado_nuevo):
    if estado_actual == estado_nuevo:
        return True
    return estado_nuevo in ALLOWED_CREDITO_TRANSITIONS.get(estado_actual, set())


def es_transicion_inversion_valida(estado_actual, estado_nuevo):
    return estado_nuevo in ALLOWED_INVERSION_TRANSITIONS.get(estado_actual, set())


def cambiar_estado_credito(credito, estado_nuevo):
    """
    Cambia el estado del crédito en memoria validando la transición.
    El llamador es responsable de guardar el crédito.
    """
    if not es_transicion_credito_valida(credito.estado, estado_nuevo):
        raise ValidationError(
            f"Transicion invalida: {credito.estado} -> {estado_nuevo} para el crédito '{credito.codigo}'."
        )
    credito.estado = estado_nuevo
    return credito
