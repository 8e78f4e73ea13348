"""
Cálculos del estado de fondeo de un crédito.

Funciones puras (sin acceso a base de datos) usadas por los modelos, las vistas
del marketplace y los servicios de inversión:

- Cupo disponible: ``monto_solicitado - monto_fondeado``. Es el único techo
  válido para cualquier inversión, venga del inversionista o del administrador.
- Porcentaje de fondeo para la barra de progreso, acotado a [0, 100].
- LTV (loan to value) y su clasificación por bandas de riesgo. Las bandas son
  solo informativas, no bloquean ninguna operación.
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.core.exceptions import ValidationError

CIEN = Decimal('100')
DOS_DECIMALES = Decimal('0.01')

#? LTV asumido cuando el inmueble no tiene valor comercial registrado
LTV_POR_DEFECTO = Decimal('50')

#? Bandas de riesgo por LTV: (límite superior incluido, código, etiqueta)
BANDAS_LTV = [
    (Decimal('40'), 'A1', 'Bajo Riesgo'),
    (Decimal('55'), 'A2', 'Riesgo Moderado'),
    (Decimal('70'), 'B1', 'Riesgo Medio'),
]
BANDA_LTV_ALTA = ('B2', 'Riesgo Alto')

MONTOS_RAPIDOS = [
    Decimal('1000000'),
    Decimal('5000000'),
    Decimal('10000000'),
    Decimal('20000000'),
]

CIUDADES_PRINCIPALES = ('bogota', 'bogotá', 'medellin', 'medellín', 'cali', 'barranquilla', 'cartagena')

AJUSTE_TIPO_INMUEBLE = {
    'casa': 5,
    'apartamento': 3,
    'local': -5,
}

PATRON_CODIGO = re.compile(r'CR-(\d+)')


def _a_decimal(valor):
    if valor is None or valor == '':
        return Decimal('0')
    if isinstance(valor, Decimal):
        return valor
    return Decimal(str(valor))


def calcular_cupo_disponible(monto_solicitado, monto_fondeado):
    """Monto que todavía puede invertirse en el crédito."""
    return _a_decimal(monto_solicitado) - _a_decimal(monto_fondeado)


def calcular_ratio_fondeo(monto_solicitado, monto_fondeado):
    """
    Porcentaje fondeado sin acotar. Puede superar 100 mientras existan
    inversiones pendientes que aún no se resuelven.
    """
    solicitado = _a_decimal(monto_solicitado)
    if solicitado <= 0:
        return Decimal('0')
    return _a_decimal(monto_fondeado) / solicitado * CIEN


def calcular_porcentaje_fondeo(monto_solicitado, monto_fondeado):
    """Porcentaje para la barra de progreso, siempre dentro de [0, 100]."""
    ratio = calcular_ratio_fondeo(monto_solicitado, monto_fondeado)
    ratio = min(max(ratio, Decimal('0')), CIEN)
    return ratio.quantize(DOS_DECIMALES, rounding=ROUND_HALF_UP)


def calcular_ltv(monto_solicitado, valor_comercial):
    """LTV en porcentaje, o None si el inmueble no tiene valor comercial."""
    valor = _a_decimal(valor_comercial)
    if valor <= 0:
        return None
    ltv = _a_decimal(monto_solicitado) / valor * CIEN
    return ltv.quantize(DOS_DECIMALES, rounding=ROUND_HALF_UP)


def clasificar_ltv(ltv):
    """
    Devuelve la banda de riesgo del marketplace para un LTV.

    Returns:
        dict: {'codigo': 'A1', 'etiqueta': 'Bajo Riesgo', 'ltv': Decimal}
    """
    ltv = LTV_POR_DEFECTO if ltv is None else _a_decimal(ltv)
    for limite, codigo, etiqueta in BANDAS_LTV:
        if ltv <= limite:
            return {'codigo': codigo, 'etiqueta': etiqueta, 'ltv': ltv}
    codigo, etiqueta = BANDA_LTV_ALTA
    return {'codigo': codigo, 'etiqueta': etiqueta, 'ltv': ltv}


def semaforo_ltv(ltv):
    """Color del LTV en la tabla de colocaciones: favorable hasta 50, alto sobre 70."""
    if ltv is None:
        return ''
    ltv = _a_decimal(ltv)
    if ltv > 70:
        return 'alto'
    if ltv > 50:
        return 'medio'
    return 'bajo'


def calcular_cobertura_garantia(ltv):
    """Veces que el valor del inmueble cubre el crédito (100 / LTV)."""
    ltv = LTV_POR_DEFECTO if ltv is None else _a_decimal(ltv)
    if ltv <= 0:
        return None
    return (CIEN / ltv).quantize(DOS_DECIMALES, rounding=ROUND_HALF_UP)


def calcular_puntaje_riesgo(ltv, tipo_inmueble='', ciudad=''):
    """
    Puntaje informativo de 0 a 100 que se muestra en el detalle del marketplace.
    Parte de 100 y descuenta según el LTV; ajusta por tipo de inmueble y ciudad.
    """
    ltv = LTV_POR_DEFECTO if ltv is None else _a_decimal(ltv)
    puntaje = 100

    if ltv > 70:
        puntaje -= 30
    elif ltv > 60:
        puntaje -= 20
    elif ltv > 50:
        puntaje -= 10
    elif ltv > 40:
        puntaje -= 5

    tipo = (tipo_inmueble or '').lower()
    for clave, ajuste in AJUSTE_TIPO_INMUEBLE.items():
        if clave in tipo:
            puntaje += ajuste

    ciudad = (ciudad or '').lower()
    if any(principal in ciudad for principal in CIUDADES_PRINCIPALES):
        puntaje += 5

    return max(0, min(100, puntaje))


def nivel_riesgo(puntaje):
    if puntaje >= 85:
        return 'Riesgo Bajo'
    if puntaje >= 70:
        return 'Moderado'
    if puntaje >= 55:
        return 'Medio'
    return 'Riesgo Alto'


def formatear_cop(valor):
    """Formatea un monto en pesos colombianos: 40000000 -> '$40.000.000'."""
    return f"${_a_decimal(valor):,.0f}".replace(',', '.')


def validar_monto_inversion(monto, cupo_disponible):
    """
    Valida un monto contra el cupo disponible del crédito.

    Raises:
        ValidationError: si el monto no es positivo, si el crédito ya no tiene
            cupo o si el monto lo excede.
    """
    try:
        monto = _a_decimal(monto)
    except (InvalidOperation, ValueError):
        raise ValidationError('Ingrese un monto válido.')
    if not monto.is_finite():
        raise ValidationError('Ingrese un monto válido.')
    cupo = _a_decimal(cupo_disponible)

    if monto <= 0:
        raise ValidationError('El monto debe ser mayor a cero.')
    if cupo <= 0:
        raise ValidationError('Este crédito ya no tiene cupo disponible.')
    if monto > cupo:
        raise ValidationError(
            f'El monto excede el cupo disponible. Cupo restante: {formatear_cop(cupo)}'
        )
    return monto


def montos_rapidos(cupo_disponible):
    """Botones de monto sugerido que caben en el cupo disponible."""
    cupo = _a_decimal(cupo_disponible)
    return [monto for monto in MONTOS_RAPIDOS if monto <= cupo]


def calcular_tasa_ea(tasa_nm):
    """Convierte una tasa nominal mensual (%) a efectiva anual (%)."""
    nm = _a_decimal(tasa_nm)
    ea = ((1 + nm / CIEN) ** 12 - 1) * CIEN
    return ea.quantize(DOS_DECIMALES, rounding=ROUND_HALF_UP)


def calcular_comision_pct(comision, monto):
    monto = _a_decimal(monto)
    if monto <= 0:
        return Decimal('0.00')
    return (_a_decimal(comision) / monto * CIEN).quantize(DOS_DECIMALES, rounding=ROUND_HALF_UP)


def siguiente_codigo(ultimo_codigo):
    """'CR-007' -> 'CR-008'. Sin código previo, o con uno sin el formato esperado, inicia en CR-001."""
    if not ultimo_codigo:
        return 'CR-001'
    coincidencia = PATRON_CODIGO.search(ultimo_codigo)
    if not coincidencia:
        return 'CR-001'
    return f"CR-{int(coincidencia.group(1)) + 1:03d}"
