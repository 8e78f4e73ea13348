import logging

from django.contrib import messages
from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.http import Http404, JsonResponse
from django.shortcuts import redirect, render
from django.views.decorators.http import require_GET, require_POST

from usuarios.decorators import admin_required
from usuarios.models import Perfil
from usuarios.utils import datos_request
from .forms import CodeudorFormSet, CreditoForm
from .models import Credito
from .services import colocaciones, inversiones
from .services.fondeo import formatear_cop

logger = logging.getLogger(__name__)


def _error_json(e, status=400):
    mensaje = e.messages[0] if isinstance(e, ValidationError) else str(e)
    return JsonResponse({'success': False, 'error': mensaje}, status=status)


#? --------- INICIO DEL PANEL ------------
@admin_required
def admin_dashboard_view(request):
    """Muestra los indicadores principales del panel administrativo."""
    context = colocaciones.obtener_indicadores_admin()
    return render(request, 'gestion_creditos/admin_dashboard.html', context)


#? --------- CRÉDITOS ------------
@admin_required
def admin_creditos_view(request):
    creditos = colocaciones.obtener_creditos_admin()
    estado = request.GET.get('estado', '')
    if estado:
        creditos = [c for c in creditos if c['estado'] == estado]

    paginator = Paginator(creditos, 20)
    context = {
        'creditos': paginator.get_page(request.GET.get('page')),
        'estado_filter': estado,
        'estados_choices': Credito.EstadoCredito.choices,
    }
    return render(request, 'gestion_creditos/admin_creditos.html', context)


@admin_required
def admin_crear_credito_view(request):
    """Crea un crédito en borrador con sus codeudores."""
    if request.method == 'POST':
        form = CreditoForm(request.POST)
        formset = CodeudorFormSet(request.POST, prefix='codeudores')
        if form.is_valid() and formset.is_valid():
            try:
                credito = colocaciones.crear_credito(
                    form.cleaned_data,
                    [f.cleaned_data for f in formset if f.cleaned_data]
                )
            except ValidationError as e:
                messages.error(request, e.messages[0])
            else:
                messages.success(request, f'Crédito {credito.codigo} creado en borrador.')
                return redirect('admin_panel:detalle_credito', credito_id=credito.id)
        else:
            messages.error(request, 'Revise los campos del formulario.')
    else:
        form = CreditoForm(initial={'codigo': colocaciones.siguiente_codigo_credito()})
        formset = CodeudorFormSet(prefix='codeudores')

    return render(request, 'gestion_creditos/admin_crear_credito.html', {
        'form': form,
        'formset': formset,
    })


@admin_required
def admin_detalle_credito_view(request, credito_id):
    context = colocaciones.obtener_detalle_credito(credito_id)
    return render(request, 'gestion_creditos/admin_detalle_credito.html', context)


@admin_required
@require_POST
def admin_publicar_credito_view(request, credito_id):
    try:
        credito = colocaciones.publicar_credito(credito_id)
        messages.success(request, f'Crédito {credito.codigo} publicado en el marketplace.')
    except ValidationError as e:
        messages.error(request, e.messages[0])
    return redirect('admin_panel:detalle_credito', credito_id=credito_id)


#? --------- COLOCACIONES ------------
@admin_required
def admin_colocaciones_view(request):
    context = {
        'creditos': colocaciones.obtener_creditos_con_detalle(),
    }
    return render(request, 'gestion_creditos/admin_colocaciones.html', context)


@admin_required
def admin_nueva_colocacion_view(request):
    """
    GET: formulario universal de crédito con el siguiente código sugerido.
    POST (JSON): registra deudor, codeudor, inversionistas y el crédito en una sola operación.
    """
    if request.method == 'POST':
        try:
            credito = colocaciones.crear_colocacion_completa(datos_request(request), usuario_admin=request.user)
            return JsonResponse({'success': True, 'credito_id': credito.id, 'codigo': credito.codigo})
        except ValidationError as e:
            return _error_json(e)
        except Exception as e:
            logger.error(f"Error inesperado al crear la colocación: {e}", exc_info=True)
            return JsonResponse({'success': False, 'error': 'Error inesperado al crear el registro.'}, status=500)

    context = {
        'siguiente_codigo': colocaciones.siguiente_codigo_credito(),
        'inversionistas': colocaciones.listar_inversionistas(),
        'propietarios': colocaciones.listar_propietarios(),
        'tipos_inmueble': Credito.TipoInmueble.choices,
    }
    return render(request, 'gestion_creditos/admin_nueva_colocacion.html', context)


@admin_required
@require_POST
def admin_agregar_inversion_view(request, credito_id):
    try:
        inversion = colocaciones.agregar_inversion_manual(credito_id, datos_request(request))
        return JsonResponse({
            'success': True,
            'inversion_id': inversion.id,
            'estado': inversion.estado,
        })
    except ValidationError as e:
        return _error_json(e)
    except Http404:
        return JsonResponse({'success': False, 'error': 'Credito no encontrado.'}, status=404)
    except Exception as e:
        logger.error(f"Error inesperado al agregar inversión al crédito {credito_id}: {e}", exc_info=True)
        return JsonResponse({'success': False, 'error': 'Error inesperado al agregar inversion.'}, status=500)


@admin_required
@require_GET
def admin_credito_modal_view(request, credito_id):
    try:
        return JsonResponse({'success': True, 'credito': colocaciones.obtener_credito_para_modal(credito_id)})
    except Http404:
        return JsonResponse({'success': False, 'error': 'Credito no encontrado.'}, status=404)


@admin_required
@require_POST
def admin_registrar_pago_view(request, credito_id):
    try:
        pago = colocaciones.registrar_pago(credito_id, datos_request(request), usuario=request.user)
        return JsonResponse({
            'success': True,
            'pago_id': pago.id,
            'monto_total': pago.monto_total,
            'estado_credito': pago.credito.estado,
        })
    except ValidationError as e:
        return _error_json(e)
    except Http404:
        return JsonResponse({'success': False, 'error': 'Credito no encontrado.'}, status=404)
    except Exception as e:
        logger.error(f"Error inesperado al registrar pago del crédito {credito_id}: {e}", exc_info=True)
        return JsonResponse({'success': False, 'error': 'Error inesperado al registrar el pago.'}, status=500)


@admin_required
@require_GET
def admin_pagos_credito_view(request, credito_id):
    pagos = colocaciones.obtener_pagos_credito(credito_id).values(
        'id', 'fecha_pago', 'monto_capital', 'monto_interes', 'monto_mora', 'monto_total', 'notas'
    )
    return JsonResponse({'success': True, 'pagos': list(pagos)})


@admin_required
@require_GET
def admin_buscar_deudor_view(request):
    return JsonResponse(colocaciones.buscar_perfil_por_cedula(request.GET.get('cedula', '')))


@admin_required
@require_GET
def admin_buscar_inversionista_view(request):
    return JsonResponse(
        colocaciones.buscar_perfil_por_cedula(request.GET.get('cedula', ''), rol=Perfil.Rol.INVERSIONISTA)
    )


@admin_required
@require_GET
def admin_inversionistas_select_view(request):
    return JsonResponse({'success': True, 'inversionistas': colocaciones.listar_inversionistas()})


#? --------- TESORERÍA: INVERSIONES PENDIENTES ------------
@admin_required
def admin_inversiones_view(request):
    context = {
        'inversiones': inversiones.obtener_inversiones_pendientes(),
    }
    return render(request, 'gestion_creditos/admin_inversiones.html', context)


@admin_required
@require_POST
def admin_aprobar_inversion_view(request, inversion_id):
    """
    Confirma una inversión pendiente usando el servicio centralizado.
    """
    datos = datos_request(request)
    try:
        inversion = inversiones.confirmar_inversion(
            inversion_id=inversion_id,
            usuario_admin=request.user,
            nota=datos.get('nota_admin', '')
        )
        messages.success(
            request,
            f'Inversión de {formatear_cop(inversion.monto_invertido)} confirmada en {inversion.credito.codigo}'
        )
        return JsonResponse({
            'success': True,
            'monto_fondeado': inversion.credito.monto_fondeado,
            'estado_credito': inversion.credito.estado,
        })
    except ValidationError as e:
        logger.warning(f"No se pudo confirmar la inversión {inversion_id}: {e.messages[0]}")
        return _error_json(e)
    except Http404:
        return JsonResponse({'success': False, 'error': 'Inversión no encontrada.'}, status=404)
    except Exception as e:
        logger.error(f"Error al aprobar inversión {inversion_id}: {e}", exc_info=True)
        return JsonResponse({'success': False, 'error': 'Error inesperado al aprobar la inversión.'}, status=500)


@admin_required
@require_POST
def admin_rechazar_inversion_view(request, inversion_id):
    """
    Rechaza una inversión pendiente usando el servicio centralizado.
    """
    datos = datos_request(request)
    try:
        inversion = inversiones.rechazar_inversion(
            inversion_id=inversion_id,
            usuario_admin=request.user,
            motivo=datos.get('motivo', '')
        )
        messages.warning(request, f'Inversión en {inversion.credito.codigo} rechazada.')
        return JsonResponse({'success': True})
    except ValidationError as e:
        return _error_json(e)
    except Http404:
        return JsonResponse({'success': False, 'error': 'Inversión no encontrada.'}, status=404)
    except Exception as e:
        logger.error(f"Error al rechazar inversión {inversion_id}: {e}", exc_info=True)
        return JsonResponse({'success': False, 'error': 'Error inesperado al rechazar la inversión.'}, status=500)
