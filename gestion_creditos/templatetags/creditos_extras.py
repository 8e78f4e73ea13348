"""
Template tags y filtros personalizados para la app gestion_creditos
"""
from django import template
from decimal import Decimal

from gestion_creditos.services.fondeo import formatear_cop

register = template.Library()


@register.filter(name='cop')
def cop(valor):
    """
    Formatea un monto en pesos colombianos.

    Uso en template:
        {{ credito.monto_solicitado|cop }}  ->  $100.000.000
    """
    if valor is None or valor == '':
        return '-'
    return formatear_cop(valor)


@register.filter(name='sum_attr')
def sum_attr(queryset, attr_name):
    """
    Suma un atributo específico de todos los objetos en un queryset o lista.

    Uso en template:
        {{ pagos|sum_attr:"monto_capital" }}
    """
    total = Decimal('0.00')
    for obj in queryset:
        value = obj.get(attr_name, 0) if isinstance(obj, dict) else getattr(obj, attr_name, 0)
        if value:
            total += Decimal(str(value))
    return total
