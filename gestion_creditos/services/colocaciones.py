"""
Servicios del back office: creación y publicación de créditos, colocaciones
manuales de capital, registro de pagos y consultas para las tablas del admin.
"""
import logging
from datetime import datetime, time
from decimal import Decimal, InvalidOperation

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Prefetch, Q, Sum
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.dateparse import parse_date

from gestion_creditos.models import Codeudor, Credito, Inversion, PagoCredito
from usuarios.models import Perfil
from usuarios.services import obtener_o_crear_usuario
from . import fondeo
from .estados import cambiar_estado_credito
from .inversiones import crear_inversion

logger = logging.getLogger(__name__)

LONGITUD_MINIMA_CEDULA = 5


def _max_inversionistas():
    return getattr(settings, 'ALURI_MAX_INVERSIONISTAS_POR_CREDITO', 5)


def _monto(valor, campo='monto'):
    """Convierte un valor del formulario a Decimal; vacío equivale a cero."""
    if valor in (None, ''):
        return Decimal('0')
    try:
        numero = Decimal(str(valor))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'Valor invalido para {campo}.')
    if not numero.is_finite():
        raise ValidationError(f'Valor invalido para {campo}.')
    return numero


def _plazo(valor):
    if valor in (None, ''):
        return 12
    try:
        plazo = int(valor)
    except (TypeError, ValueError):
        raise ValidationError('Plazo invalido.')
    if plazo <= 0:
        raise ValidationError('Plazo invalido.')
    return plazo


def _fecha(valor):
    if not valor:
        return None
    if hasattr(valor, 'year'):
        return valor
    try:
        fecha = parse_date(str(valor))
    except ValueError:
        fecha = None
    if fecha is None:
        raise ValidationError('Fecha invalida.')
    return fecha


def nombre_usuario(usuario):
    if usuario is None:
        return None
    perfil = getattr(usuario, 'perfil', None)
    if perfil and perfil.nombre_completo:
        return perfil.nombre_completo
    return usuario.get_full_name() or usuario.email


def cedula_usuario(usuario):
    perfil = getattr(usuario, 'perfil', None) if usuario else None
    return perfil.documento_identidad if perfil else None


# ========================================
# BÚSQUEDAS
# ========================================

def buscar_perfil_por_cedula(cedula, rol=None):
    """
    Busca un perfil por documento para autocompletar formularios.
    Cédulas de menos de 5 caracteres no se buscan.
    """
    cedula = (cedula or '').strip()
    if len(cedula) < LONGITUD_MINIMA_CEDULA:
        return {'encontrado': False}

    perfiles = Perfil.objects.filter(documento_identidad=cedula)
    if rol:
        perfiles = perfiles.filter(rol=rol)
    perfil = perfiles.first()
    if not perfil:
        return {'encontrado': False}

    return {
        'encontrado': True,
        'id': perfil.usuario_id,
        'nombre_completo': perfil.nombre_completo,
        'email': perfil.email,
        'telefono': perfil.telefono,
        'direccion': perfil.direccion,
        'ciudad': perfil.ciudad,
    }


def listar_inversionistas():
    return list(
        Perfil.objects.filter(rol=Perfil.Rol.INVERSIONISTA)
        .order_by('nombre_completo')
        .values('usuario_id', 'nombre_completo', 'documento_identidad', 'email')
    )


def listar_propietarios():
    return Perfil.objects.filter(rol=Perfil.Rol.PROPIETARIO).select_related('usuario').order_by('nombre_completo')


def siguiente_codigo_credito():
    """Siguiente código consecutivo (CR-001, CR-002, ...) según el mayor existente."""
    mayor = None
    mayor_numero = -1
    for codigo in Credito.objects.filter(codigo__startswith='CR-').values_list('codigo', flat=True):
        coincidencia = fondeo.PATRON_CODIGO.search(codigo)
        if coincidencia and int(coincidencia.group(1)) > mayor_numero:
            mayor_numero = int(coincidencia.group(1))
            mayor = codigo
    return fondeo.siguiente_codigo(mayor)


# ========================================
# CRÉDITOS
# ========================================

@transaction.atomic
def crear_credito(datos, codeudores=None):
    """
    Crea un crédito en borrador con sus codeudores.

    Args:
        datos (dict): propietario, codigo, monto_solicitado y condiciones del crédito.
        codeudores (list[dict]): solo se guardan los que traen nombre y documento.
    """
    propietario = datos.get('propietario')
    codigo = (datos.get('codigo') or '').strip()
    monto = _monto(datos.get('monto_solicitado'), 'monto')

    if not propietario or not codigo or monto <= 0:
        raise ValidationError('Faltan campos obligatorios (deudor, codigo, monto).')
    if Credito.objects.filter(codigo=codigo).exists():
        raise ValidationError(f'Ya existe un crédito con el código {codigo}.')

    tasa_nm = _monto(datos.get('tasa_nm'), 'tasa')
    comision = _monto(datos.get('comision_deudor'), 'comisión')

    credito = Credito.objects.create(
        codigo=codigo,
        propietario=propietario,
        estado=Credito.EstadoCredito.BORRADOR,
        monto_solicitado=monto,
        tasa_nm=tasa_nm,
        tasa_ea=fondeo.calcular_tasa_ea(tasa_nm),
        plazo_meses=datos.get('plazo_meses') or 12,
        tipo_pago=datos.get('tipo_pago') or Credito.TipoPago.SOLO_INTERES,
        comision_deudor=comision,
        comision_aluri_pct=fondeo.calcular_comision_pct(comision, monto),
        direccion_inmueble=datos.get('direccion_inmueble') or '',
        ciudad_inmueble=datos.get('ciudad_inmueble') or '',
        tipo_inmueble=datos.get('tipo_inmueble') or '',
        valor_comercial=datos.get('valor_comercial') or None,
        matricula_inmobiliaria=datos.get('matricula_inmobiliaria') or '',
        fecha_estimada=_fecha(datos.get('fecha_estimada')),
    )

    for codeudor in codeudores or []:
        nombre = (codeudor.get('nombre_completo') or '').strip()
        documento = (codeudor.get('documento_identidad') or '').strip()
        if not nombre or not documento:
            continue
        Codeudor.objects.create(
            credito=credito,
            nombre_completo=nombre,
            documento_identidad=documento,
            email=codeudor.get('email') or '',
            telefono=codeudor.get('telefono') or '',
        )

    logger.info(f"Crédito {credito.codigo} creado en borrador por {fondeo.formatear_cop(monto)}")
    return credito


def publicar_credito(credito_id):
    """Publica un crédito en el marketplace: borrador -> en fondeo."""
    with transaction.atomic():
        credito = get_object_or_404(Credito.objects.select_for_update(), pk=credito_id)
        if credito.estado != Credito.EstadoCredito.BORRADOR:
            raise ValidationError('Solo se pueden publicar creditos en estado borrador.')
        cambiar_estado_credito(credito, Credito.EstadoCredito.EN_FONDEO)
        credito.save(update_fields=['estado', 'fecha_actualizacion'])

    logger.info(f"Crédito {credito.codigo} publicado en el marketplace")
    return credito


def obtener_creditos_admin():
    """Tabla del panel de créditos: deudor, monto, estado, garantía y días de mora."""
    creditos = Credito.objects.select_related('propietario__perfil').order_by('codigo')
    return [
        {
            'id': credito.id,
            'codigo': credito.codigo,
            'deudor': nombre_usuario(credito.propietario),
            'monto_solicitado': credito.monto_solicitado,
            'monto_fondeado': credito.monto_fondeado,
            'estado': credito.estado,
            'estado_display': credito.get_estado_display(),
            'valor_garantia': credito.valor_comercial,
            'dias_en_mora': credito.dias_en_mora,
        }
        for credito in creditos
    ]


def obtener_detalle_credito(credito_id):
    credito = get_object_or_404(
        Credito.objects.select_related('propietario__perfil', 'codeudor__perfil'),
        pk=credito_id
    )
    return {
        'credito': credito,
        'codeudores': credito.codeudores.all(),
        'inversiones': credito.inversiones.select_related('inversionista__perfil').order_by('-fecha_creacion'),
        'pagos': credito.pagos.all(),
    }


# ========================================
# COLOCACIONES
# ========================================

def _resolver_usuario(usuario_id, nuevo, rol, etiqueta):
    if usuario_id:
        usuario = User.objects.filter(pk=usuario_id).first()
        if not usuario:
            raise ValidationError(f'No se encontró el {etiqueta} seleccionado.')
        return usuario
    if nuevo:
        try:
            usuario, _ = obtener_o_crear_usuario(nuevo, rol)
        except ValidationError as e:
            raise ValidationError(f'Error creando {etiqueta}: {" ".join(e.messages)}')
        return usuario
    return None


@transaction.atomic
def crear_colocacion_completa(datos, usuario_admin=None):
    """
    Registra de una sola vez un crédito ya colocado: deudor, codeudor,
    inversionistas (nuevos o existentes) e inversiones confirmadas.

    El crédito queda activo si las inversiones cubren el monto solicitado,
    de lo contrario queda en fondeo por el saldo.
    """
    codigo = (datos.get('codigo') or '').strip()
    monto = _monto(datos.get('monto_solicitado'), 'monto')

    if not codigo or monto <= 0:
        raise ValidationError('Codigo y monto son obligatorios.')
    if not datos.get('deudor_id') and not datos.get('nuevo_deudor'):
        raise ValidationError('Debe seleccionar o crear un deudor.')

    inversionistas = datos.get('inversionistas') or []
    if len(inversionistas) > _max_inversionistas():
        raise ValidationError(f'Maximo {_max_inversionistas()} inversionistas por credito.')

    montos_inversion = [_monto(inv.get('monto')) for inv in inversionistas]
    if any(m < 0 for m in montos_inversion):
        raise ValidationError('Los montos de inversion no pueden ser negativos.')
    if sum(montos_inversion, Decimal('0')) > monto:
        raise ValidationError('El total de inversiones excede el monto del credito.')
    if Credito.objects.filter(codigo=codigo).exists():
        raise ValidationError(f'Ya existe un crédito con el código {codigo}.')
    plazo_meses = _plazo(datos.get('plazo_meses'))

    deudor = _resolver_usuario(datos.get('deudor_id'), datos.get('nuevo_deudor'), Perfil.Rol.PROPIETARIO, 'deudor')

    codeudor = None
    if datos.get('tiene_codeudor'):
        codeudor = _resolver_usuario(
            datos.get('codeudor_id'), datos.get('nuevo_codeudor'), Perfil.Rol.PROPIETARIO, 'co-deudor'
        )

    procesados = []
    for inv, monto_inversion in zip(inversionistas, montos_inversion):
        if monto_inversion == 0:
            continue
        inversionista = _resolver_usuario(
            inv.get('inversionista_id'), inv.get('nuevo_inversionista'), Perfil.Rol.INVERSIONISTA, 'inversionista'
        )
        if inversionista:
            procesados.append((inversionista, monto_inversion))

    total_fondeado = sum((m for _, m in procesados), Decimal('0'))
    tasa_nm = _monto(datos.get('tasa_nm'), 'tasa')
    tasa_ea = fondeo.calcular_tasa_ea(tasa_nm)
    comision = _monto(datos.get('comision_deudor'), 'comisión')
    inmueble = datos.get('inmueble') or {}
    hoy = timezone.localdate()
    fondeado_completo = total_fondeado >= monto

    credito = Credito.objects.create(
        codigo=codigo,
        propietario=deudor,
        codeudor=codeudor,
        monto_solicitado=monto,
        monto_fondeado=total_fondeado,
        tasa_nm=tasa_nm,
        tasa_ea=tasa_ea,
        plazo_meses=plazo_meses,
        tipo_pago=Credito.TipoPago.SOLO_INTERES,
        comision_deudor=comision,
        comision_aluri_pct=fondeo.calcular_comision_pct(comision, monto),
        direccion_inmueble=inmueble.get('direccion') or '',
        ciudad_inmueble=inmueble.get('ciudad') or '',
        tipo_inmueble=inmueble.get('tipo_inmueble') or '',
        valor_comercial=_monto(inmueble.get('valor_comercial'), 'valor comercial') or None,
        estado=Credito.EstadoCredito.ACTIVO if fondeado_completo else Credito.EstadoCredito.EN_FONDEO,
        fecha_firma=hoy,
        fecha_desembolso=hoy,
        fecha_proximo_pago=hoy + relativedelta(months=1) if fondeado_completo else None,
    )

    ahora = timezone.now()
    Inversion.objects.bulk_create([
        Inversion(
            credito=credito,
            inversionista=inversionista,
            monto_invertido=monto_inversion,
            tasa_inversionista=tasa_ea,
            estado=Inversion.EstadoInversion.CONFIRMADA,
            fecha_creacion=ahora,
            fecha_confirmacion=ahora,
            procesado_por=usuario_admin,
            nota_admin='Colocación registrada por administración',
        )
        for inversionista, monto_inversion in procesados
    ])

    logger.info(
        f"Colocación {credito.codigo} registrada: {len(procesados)} inversionista(s), "
        f"{fondeo.formatear_cop(total_fondeado)} de {fondeo.formatear_cop(monto)}"
    )
    return credito


@transaction.atomic
def agregar_inversion_manual(credito_id, datos):
    """
    Ingreso manual de una inversión desde el admin. Queda pendiente de pago
    bajo el mismo techo de cupo que las inversiones del marketplace.
    """
    monto = _monto(datos.get('monto'))
    if monto <= 0:
        raise ValidationError('Datos de inversion invalidos.')
    if not datos.get('inversionista_id') and not datos.get('nuevo_inversionista'):
        raise ValidationError('Debe seleccionar o crear un inversionista.')

    credito = get_object_or_404(Credito, pk=credito_id)
    fondeo.validar_monto_inversion(monto, credito.cupo_disponible)

    inversionista = _resolver_usuario(
        datos.get('inversionista_id'), datos.get('nuevo_inversionista'), Perfil.Rol.INVERSIONISTA, 'inversionista'
    )
    fecha = _fecha(datos.get('fecha'))
    fecha_creacion = None
    if fecha:
        fecha_creacion = timezone.make_aware(datetime.combine(fecha, time.min))

    return crear_inversion(
        credito.id,
        inversionista,
        monto,
        exigir_fondeo=False,
        tasa_inversionista=_monto(datos.get('tasa_inversionista'), 'tasa') or credito.tasa_ea,
        fecha_creacion=fecha_creacion,
    )


def obtener_credito_para_modal(credito_id):
    credito = get_object_or_404(Credito.objects.select_related('propietario__perfil'), pk=credito_id)
    return {
        'id': credito.id,
        'codigo': credito.codigo,
        'deudor': nombre_usuario(credito.propietario),
        'monto_solicitado': credito.monto_solicitado,
        'monto_fondeado': credito.monto_fondeado,
        'cupo_disponible': credito.cupo_disponible,
        'estado': credito.estado,
    }


def obtener_creditos_con_detalle():
    """Filas de la tabla de colocaciones con LTV e inversionistas confirmados."""
    confirmadas = Inversion.objects.filter(
        estado=Inversion.EstadoInversion.CONFIRMADA
    ).select_related('inversionista__perfil')

    creditos = Credito.objects.select_related(
        'propietario__perfil', 'codeudor__perfil'
    ).prefetch_related(
        Prefetch('inversiones', queryset=confirmadas, to_attr='inversiones_confirmadas')
    ).order_by('-fecha_creacion')

    filas = []
    for credito in creditos:
        ltv = credito.ltv
        filas.append({
            'id': credito.id,
            'codigo': credito.codigo,
            'estado': credito.estado,
            'estado_display': credito.get_estado_display(),
            'monto_solicitado': credito.monto_solicitado,
            'monto_fondeado': credito.monto_fondeado,
            'porcentaje_fondeo': credito.porcentaje_fondeo,
            'tasa_nm': credito.tasa_nm,
            'tasa_ea': credito.tasa_ea,
            'comision_deudor': credito.comision_deudor,
            'deudor_nombre': nombre_usuario(credito.propietario),
            'deudor_cedula': cedula_usuario(credito.propietario),
            'codeudor_nombre': nombre_usuario(credito.codeudor),
            'ciudad': credito.ciudad_inmueble,
            'valor_comercial': credito.valor_comercial,
            'ltv': ltv,
            'semaforo_ltv': fondeo.semaforo_ltv(ltv),
            'inversionistas': [nombre_usuario(inv.inversionista) for inv in credito.inversiones_confirmadas],
            'fecha_creacion': credito.fecha_creacion,
        })
    return filas


# ========================================
# PAGOS
# ========================================

def registrar_pago(credito_id, datos, usuario=None):
    """
    Agrega un pago al libro del crédito. Cuando el capital pagado cubre el
    monto solicitado, un crédito activo o atrasado pasa a pagado.
    """
    if not credito_id:
        raise ValidationError('ID del credito es requerido.')
    fecha = _fecha(datos.get('fecha_pago'))
    if not fecha:
        raise ValidationError('Fecha de pago es requerida.')

    capital = _monto(datos.get('monto_capital'), 'capital')
    interes = _monto(datos.get('monto_interes'), 'interés')
    mora = _monto(datos.get('monto_mora'), 'mora')
    if min(capital, interes, mora) < 0:
        raise ValidationError('Los montos no pueden ser negativos.')
    if capital + interes + mora <= 0:
        raise ValidationError('El monto total debe ser mayor a cero.')

    with transaction.atomic():
        credito = get_object_or_404(Credito.objects.select_for_update(), pk=credito_id)
        if credito.estado in (Credito.EstadoCredito.BORRADOR, Credito.EstadoCredito.CANCELADO):
            raise ValidationError(f'No se pueden registrar pagos a un crédito {credito.get_estado_display().lower()}.')

        pago = PagoCredito.objects.create(
            credito=credito,
            fecha_pago=fecha,
            monto_capital=capital,
            monto_interes=interes,
            monto_mora=mora,
            notas=(datos.get('notas') or '').strip(),
            registrado_por=usuario if usuario and usuario.is_authenticated else None,
        )

        capital_pagado = credito.pagos.aggregate(total=Sum('monto_capital'))['total'] or Decimal('0')
        if capital_pagado >= credito.monto_solicitado and credito.estado in (
            Credito.EstadoCredito.ACTIVO, Credito.EstadoCredito.ATRASADO
        ):
            cambiar_estado_credito(credito, Credito.EstadoCredito.PAGADO)
            credito.fecha_proximo_pago = None
            credito.save(update_fields=['estado', 'fecha_proximo_pago', 'fecha_actualizacion'])
            logger.info(f"Crédito {credito.codigo} pagado en su totalidad")

    logger.info(f"Pago registrado en {credito.codigo}: {fondeo.formatear_cop(pago.monto_total)} ({fecha})")
    return pago


def obtener_pagos_credito(credito_id):
    return PagoCredito.objects.filter(credito_id=credito_id).order_by('-fecha_pago', '-id')


# ========================================
# INDICADORES
# ========================================

def obtener_indicadores_admin():
    """KPIs del inicio del panel de administración."""
    estados_vigentes = [Credito.EstadoCredito.ACTIVO, Credito.EstadoCredito.ATRASADO, Credito.EstadoCredito.EN_MORA]
    creditos = Credito.objects.aggregate(
        activos=Count('id', filter=Q(estado=Credito.EstadoCredito.ACTIVO)),
        en_mora=Count('id', filter=Q(estado__in=[Credito.EstadoCredito.ATRASADO, Credito.EstadoCredito.EN_MORA])),
        en_fondeo=Count('id', filter=Q(estado=Credito.EstadoCredito.EN_FONDEO)),
        capital_colocado=Sum('monto_fondeado', filter=Q(estado__in=estados_vigentes)),
    )
    return {
        'total_usuarios': Perfil.objects.count(),
        'creditos_activos': creditos['activos'],
        'creditos_en_mora': creditos['en_mora'],
        'creditos_en_fondeo': creditos['en_fondeo'],
        'capital_colocado': creditos['capital_colocado'] or Decimal('0'),
        'inversiones_pendientes': Inversion.objects.filter(
            estado=Inversion.EstadoInversion.PENDIENTE_PAGO
        ).count(),
    }
