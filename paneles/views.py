import logging
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db.models import Count, Q, Sum
from django.http import Http404, JsonResponse
from django.shortcuts import get_object_or_404, render
from django.views.decorators.http import require_POST

from gestion_creditos.models import Credito, Inversion
from gestion_creditos.services import distribucion, fondeo
from gestion_creditos.services.inversiones import crear_inversion
from usuarios.decorators import inversionista_required, propietario_required
from usuarios.utils import datos_request

logger = logging.getLogger(__name__)

ESTADOS_CREDITO_VIGENTE = (
    Credito.EstadoCredito.ACTIVO,
    Credito.EstadoCredito.ATRASADO,
    Credito.EstadoCredito.EN_MORA,
)


def _inversiones_usuario(usuario):
    return Inversion.objects.filter(inversionista=usuario).select_related(
        'credito'
    ).prefetch_related('credito__pagos')


def _ficha_marketplace(credito):
    ltv = credito.ltv
    return {
        'credito': credito,
        'ltv': ltv,
        'banda': fondeo.clasificar_ltv(ltv),
        'porcentaje_fondeo': credito.porcentaje_fondeo,
        'cupo_disponible': credito.cupo_disponible,
    }


# ========================================
# INVERSIONISTA
# ========================================

@inversionista_required
def inversionista_inicio_view(request):
    """Resumen del portafolio confirmado del inversionista."""
    confirmadas = _inversiones_usuario(request.user).filter(estado=Inversion.EstadoInversion.CONFIRMADA)
    context = distribucion.resumen_portafolio(confirmadas)
    context.update({
        'inversiones_recientes': confirmadas.order_by('-fecha_creacion')[:5],
        'pendientes': Inversion.objects.filter(
            inversionista=request.user,
            estado=Inversion.EstadoInversion.PENDIENTE_PAGO
        ).count(),
    })
    return render(request, 'paneles/inversionista_inicio.html', context)


@inversionista_required
def marketplace_view(request):
    """Oportunidades en fondeo, con búsqueda por código o ciudad y filtro por banda de riesgo."""
    creditos = Credito.objects.filter(estado=Credito.EstadoCredito.EN_FONDEO).order_by('-fecha_creacion')

    search = request.GET.get('search', '').strip()
    if search:
        creditos = creditos.filter(Q(codigo__icontains=search) | Q(ciudad_inmueble__icontains=search))

    riesgo = request.GET.get('riesgo', '')
    fichas = [_ficha_marketplace(credito) for credito in creditos]
    if riesgo:
        fichas = [ficha for ficha in fichas if ficha['banda']['codigo'] == riesgo]

    context = {
        'fichas': fichas,
        'search': search,
        'riesgo_filter': riesgo,
        'bandas': ['A1', 'A2', 'B1', 'B2'],
    }
    return render(request, 'paneles/marketplace.html', context)


@inversionista_required
def marketplace_detalle_view(request, credito_id):
    """Detalle de una oportunidad. Solo existen en el marketplace los créditos en fondeo."""
    credito = get_object_or_404(Credito, pk=credito_id, estado=Credito.EstadoCredito.EN_FONDEO)
    ficha = _ficha_marketplace(credito)
    puntaje = fondeo.calcular_puntaje_riesgo(ficha['ltv'], credito.tipo_inmueble, credito.ciudad_inmueble)

    ficha.update({
        'puntaje_riesgo': puntaje,
        'nivel_riesgo': fondeo.nivel_riesgo(puntaje),
        'cobertura_garantia': fondeo.calcular_cobertura_garantia(ficha['ltv']),
        'montos_rapidos': fondeo.montos_rapidos(ficha['cupo_disponible']),
        'dias_ventana_fondeo': getattr(settings, 'ALURI_DIAS_VENTANA_FONDEO', 14),
    })
    return render(request, 'paneles/marketplace_detalle.html', ficha)


@inversionista_required
@require_POST
def invertir_view(request, credito_id):
    """Reserva una inversión en estado pendiente de pago."""
    datos = datos_request(request)
    try:
        inversion = crear_inversion(credito_id, request.user, datos.get('monto'))
        return JsonResponse({
            'success': True,
            'inversion_id': inversion.id,
            'mensaje': 'Inversión reservada exitosamente. Procede al pago.',
        })
    except ValidationError as e:
        logger.warning(f"Inversión rechazada para usuario {request.user.id} en crédito {credito_id}: {e.messages[0]}")
        return JsonResponse({'success': False, 'error': e.messages[0]}, status=400)
    except Http404:
        return JsonResponse({'success': False, 'error': 'Oportunidad no encontrada.'}, status=404)
    except Exception as e:
        logger.error(f"Error inesperado al invertir en crédito {credito_id}: {e}", exc_info=True)
        return JsonResponse({'success': False, 'error': 'Error inesperado al procesar la inversión.'}, status=500)


@inversionista_required
def mis_inversiones_view(request):
    """
    Inversiones del usuario agrupadas en pestañas según el estado del crédito,
    con lo recuperado a prorrata de los pagos registrados.
    """
    pestanas = {'activas': [], 'en_fondeo': [], 'finalizadas': []}

    inversiones = _inversiones_usuario(request.user).exclude(
        estado=Inversion.EstadoInversion.RECHAZADA
    ).order_by('-fecha_creacion')

    for inversion in inversiones:
        credito = inversion.credito
        fila = {
            'inversion': inversion,
            'credito': credito,
            'distribucion': distribucion.calcular_distribucion(
                inversion.monto_invertido, credito.monto_solicitado, credito.pagos.all()
            ),
        }
        if inversion.estado == Inversion.EstadoInversion.PENDIENTE_PAGO or credito.estado == Credito.EstadoCredito.EN_FONDEO:
            pestanas['en_fondeo'].append(fila)
        elif credito.estado in ESTADOS_CREDITO_VIGENTE:
            pestanas['activas'].append(fila)
        else:
            pestanas['finalizadas'].append(fila)

    return render(request, 'paneles/mis_inversiones.html', {
        'pestanas': pestanas,
        'pestana_activa': request.GET.get('tab', 'activas'),
    })


@inversionista_required
def mis_inversion_detalle_view(request, codigo):
    """Detalle de la posición del usuario en un crédito, pago por pago."""
    credito = get_object_or_404(Credito, codigo=codigo)
    inversiones = Inversion.objects.filter(
        credito=credito,
        inversionista=request.user,
        estado=Inversion.EstadoInversion.CONFIRMADA
    )
    total_invertido = inversiones.aggregate(total=Sum('monto_invertido'))['total']
    if not total_invertido:
        raise Http404("No tiene inversiones confirmadas en este crédito")

    pagos = credito.pagos.all()
    resultado = distribucion.calcular_distribucion(total_invertido, credito.monto_solicitado, pagos)

    context = {
        'credito': credito,
        'total_invertido': total_invertido,
        'distribucion': resultado,
        'pagos': distribucion.distribuir_pagos(pagos, resultado['participacion']),
        'en_mora': credito.dias_en_mora > 0,
    }
    return render(request, 'paneles/mis_inversion_detalle.html', context)


@inversionista_required
def inversionista_perfil_view(request):
    totales = Inversion.objects.filter(
        inversionista=request.user,
        estado=Inversion.EstadoInversion.CONFIRMADA
    ).aggregate(total=Sum('monto_invertido'), creditos=Count('credito', distinct=True))

    return render(request, 'paneles/inversionista_perfil.html', {
        'perfil': request.perfil,
        'total_invertido': totales['total'] or Decimal('0'),
        'creditos_invertidos': totales['creditos'],
    })


# ========================================
# PROPIETARIO
# ========================================

@propietario_required
def propietario_inicio_view(request):
    creditos = Credito.objects.filter(propietario=request.user)
    totales = creditos.aggregate(
        total=Count('id'),
        activos=Count('id', filter=Q(estado__in=[Credito.EstadoCredito.ACTIVO, Credito.EstadoCredito.EN_FONDEO])),
        solicitado=Sum('monto_solicitado'),
        fondeado=Sum('monto_fondeado'),
    )
    context = {
        'total_creditos': totales['total'],
        'creditos_activos': totales['activos'],
        'total_solicitado': totales['solicitado'] or Decimal('0'),
        'total_fondeado': totales['fondeado'] or Decimal('0'),
        'creditos_recientes': creditos.order_by('-fecha_creacion')[:5],
    }
    return render(request, 'paneles/propietario_inicio.html', context)


@propietario_required
def propietario_creditos_view(request):
    creditos = Credito.objects.filter(propietario=request.user).order_by('-fecha_creacion')
    filas = [
        {
            'credito': credito,
            'porcentaje_fondeo': int(round(credito.porcentaje_fondeo)),
        }
        for credito in creditos
    ]
    return render(request, 'paneles/propietario_creditos.html', {'filas': filas})
