"""
Distribución a prorrata de los pagos de un crédito entre sus inversionistas.

La participación de un inversionista es ``monto_invertido / monto_solicitado``.
Lo recuperado y los intereses ganados se recalculan en cada lectura sumando el
libro completo de pagos del crédito; no se guarda un saldo por inversión.
"""
from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP

CERO = Decimal('0')
UNO = Decimal('1')
CIEN = Decimal('100')
DOS_DECIMALES = Decimal('0.01')


def _a_decimal(valor):
    if valor is None:
        return CERO
    if isinstance(valor, Decimal):
        return valor
    return Decimal(str(valor))


def _redondear(valor):
    return valor.quantize(DOS_DECIMALES, rounding=ROUND_HALF_UP)


def calcular_participacion(monto_invertido, monto_solicitado):
    """Fracción del crédito que pertenece al inversionista, dentro de [0, 1]."""
    solicitado = _a_decimal(monto_solicitado)
    if solicitado <= 0:
        return CERO
    participacion = _a_decimal(monto_invertido) / solicitado
    return min(max(participacion, CERO), UNO)


def totalizar_pagos(pagos):
    """Suma capital, intereses, mora y total de una colección de pagos."""
    totales = {'capital': CERO, 'interes': CERO, 'mora': CERO}
    for pago in pagos:
        totales['capital'] += _a_decimal(pago.monto_capital)
        totales['interes'] += _a_decimal(pago.monto_interes)
        totales['mora'] += _a_decimal(pago.monto_mora)
    totales['total'] = totales['capital'] + totales['interes'] + totales['mora']
    return totales


def calcular_distribucion(monto_invertido, monto_solicitado, pagos):
    """
    Calcula lo que le corresponde a una inversión de los pagos del crédito.

    Args:
        monto_invertido: Monto de la inversión.
        monto_solicitado: Monto solicitado del crédito.
        pagos: Pagos registrados del crédito (objetos con monto_capital y monto_interes).

    Returns:
        dict: participacion, capital_recuperado, intereses_ganados,
        progreso_recuperacion (acotado a [0, 100]) y total_recibido.
    """
    invertido = _a_decimal(monto_invertido)
    participacion = calcular_participacion(invertido, monto_solicitado)
    totales = totalizar_pagos(pagos)

    capital_recuperado = totales['capital'] * participacion
    intereses_ganados = totales['interes'] * participacion

    if invertido > 0:
        progreso = capital_recuperado / invertido * CIEN
    else:
        progreso = CERO
    progreso = min(max(progreso, CERO), CIEN)

    return {
        'participacion': participacion,
        'porcentaje_participacion': _redondear(participacion * CIEN),
        'capital_recuperado': _redondear(capital_recuperado),
        'intereses_ganados': _redondear(intereses_ganados),
        'total_recibido': _redondear(capital_recuperado + intereses_ganados),
        'progreso_recuperacion': _redondear(progreso),
    }


def distribuir_pagos(pagos, participacion):
    """Detalle pago por pago de la porción que corresponde al inversionista."""
    participacion = _a_decimal(participacion)
    detalle = []
    for pago in pagos:
        capital = _redondear(_a_decimal(pago.monto_capital) * participacion)
        interes = _redondear(_a_decimal(pago.monto_interes) * participacion)
        detalle.append({
            'fecha_pago': pago.fecha_pago,
            'capital': capital,
            'interes': interes,
            'total': capital + interes,
        })
    return detalle


def resumen_portafolio(inversiones):
    """
    Resumen del portafolio de un inversionista para su panel de inicio.

    ``inversiones`` debe traer el crédito y sus pagos precargados
    (select_related('credito') + prefetch_related('credito__pagos')).
    """
    total_invertido = CERO
    suma_ponderada = CERO
    retorno_esperado = CERO
    capital_recuperado = CERO
    intereses_ganados = CERO
    proyectos_activos = 0
    por_ciudad = OrderedDict()

    for inversion in inversiones:
        credito = inversion.credito
        monto = _a_decimal(inversion.monto_invertido)
        tasa = _a_decimal(inversion.tasa_efectiva)

        total_invertido += monto
        suma_ponderada += monto * tasa
        retorno_esperado += monto * (UNO + tasa / CIEN)

        if credito.estado == credito.EstadoCredito.ACTIVO:
            proyectos_activos += 1

        distribucion = calcular_distribucion(monto, credito.monto_solicitado, credito.pagos.all())
        capital_recuperado += distribucion['capital_recuperado']
        intereses_ganados += distribucion['intereses_ganados']

        ciudad = credito.ciudad_inmueble or 'Sin ciudad'
        por_ciudad[ciudad] = por_ciudad.get(ciudad, CERO) + monto

    rentabilidad = suma_ponderada / total_invertido if total_invertido > 0 else CERO

    return {
        'total_invertido': total_invertido,
        'proyectos_activos': proyectos_activos,
        'rentabilidad_ponderada': _redondear(rentabilidad),
        'retorno_esperado': _redondear(retorno_esperado),
        'capital_recuperado': capital_recuperado,
        'intereses_ganados': intereses_ganados,
        'distribucion_ciudades': [
            {
                'ciudad': ciudad,
                'monto': monto,
                'porcentaje': _redondear(monto / total_invertido * CIEN),
            }
            for ciudad, monto in por_ciudad.items()
        ],
    }
