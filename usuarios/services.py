"""
Servicios de usuarios: creación de cuentas con su perfil, registro público de
inversionistas y edición de perfil / contraseña.

La cuenta (``User``) y su ``Perfil`` se crean en dos pasos. Si el perfil no se
puede crear, la cuenta recién creada se elimina para no dejar identidades sin
perfil, que el control de acceso trataría como usuarios sin rol.
"""
import logging

from django.conf import settings
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.shortcuts import get_object_or_404

from .models import Perfil

logger = logging.getLogger(__name__)

RUTAS_INICIO = {
    Perfil.Rol.ADMIN: '/dashboard/admin/colocaciones/',
    Perfil.Rol.PROPIETARIO: '/dashboard/propietario/',
    Perfil.Rol.INVERSIONISTA: '/dashboard/inversionista/mis-inversiones/',
}


def _password_min_length():
    return getattr(settings, 'ALURI_PASSWORD_MIN_LENGTH', 6)


def _limpiar(valor):
    return str(valor or '').strip()


def ruta_dashboard(rol):
    """Raíz del panel de un rol: /dashboard/<rol>/."""
    return f"/dashboard/{rol}/"


def ruta_inicio_por_rol(rol):
    """Página a la que se envía al usuario después de iniciar sesión."""
    return RUTAS_INICIO.get(rol, RUTAS_INICIO[Perfil.Rol.INVERSIONISTA])


def obtener_rol(usuario):
    """Rol del usuario o None si no tiene perfil."""
    if not usuario or not usuario.is_authenticated:
        return None
    perfil = Perfil.objects.filter(usuario=usuario).only('rol').first()
    return perfil.rol if perfil else None


def _validar_password(password):
    if len(password) < _password_min_length():
        raise ValidationError(f'La contraseña debe tener al menos {_password_min_length()} caracteres.')


def crear_identidad_con_perfil(email, password, **datos_perfil):
    """
    Crea la cuenta y luego su perfil. Si el perfil falla, elimina la cuenta.

    Raises:
        ValidationError: con el detalle del error al crear el perfil.
    """
    usuario = User.objects.create_user(
        username=email,
        email=email,
        password=password,
        first_name=(datos_perfil.get('nombre_completo') or '')[:150],
    )
    try:
        with transaction.atomic():
            perfil = Perfil.objects.create(usuario=usuario, email=email, **datos_perfil)
    except DatabaseError as e:
        logger.error(f"Error al crear perfil para {email}, se elimina la cuenta {usuario.id}: {e}", exc_info=True)
        usuario.delete()
        raise ValidationError(f'Error al crear perfil: {e}')

    logger.info(f"Usuario {usuario.id} creado con rol {perfil.rol}")
    return usuario


def crear_usuario(datos):
    """
    Creación de usuarios desde el panel de administración.

    Args:
        datos (dict): email, password, nombre_completo, documento_identidad, rol
    """
    email = _limpiar(datos.get('email')).lower()
    password = datos.get('password') or ''
    nombre = _limpiar(datos.get('nombre_completo'))
    documento = _limpiar(datos.get('documento_identidad'))
    rol = _limpiar(datos.get('rol'))

    if not all([email, password, nombre, documento, rol]):
        raise ValidationError('Todos los campos son requeridos')
    if rol not in Perfil.Rol.values:
        raise ValidationError('Rol invalido')
    _validar_password(password)
    if User.objects.filter(email__iexact=email).exists():
        raise ValidationError('Ya existe un usuario con este correo.')

    return crear_identidad_con_perfil(
        email,
        password,
        nombre_completo=nombre,
        documento_identidad=documento,
        rol=rol,
        estado_verificacion=Perfil.EstadoVerificacion.PENDIENTE,
    )


def actualizar_perfil_usuario(usuario_id, datos):
    """Actualiza solo los campos enviados: nombre_completo, rol y estado_verificacion."""
    perfil = get_object_or_404(Perfil, usuario_id=usuario_id)
    cambios = {}

    if datos.get('nombre_completo'):
        cambios['nombre_completo'] = _limpiar(datos['nombre_completo'])
    if datos.get('rol'):
        if datos['rol'] not in Perfil.Rol.values:
            raise ValidationError('Rol invalido')
        cambios['rol'] = datos['rol']
    if datos.get('estado_verificacion'):
        if datos['estado_verificacion'] not in Perfil.EstadoVerificacion.values:
            raise ValidationError('Estado de verificacion invalido')
        cambios['estado_verificacion'] = datos['estado_verificacion']

    if not cambios:
        raise ValidationError('No hay datos para actualizar')

    for campo, valor in cambios.items():
        setattr(perfil, campo, valor)
    perfil.save(update_fields=list(cambios.keys()))
    logger.info(f"Perfil del usuario {usuario_id} actualizado: {', '.join(cambios.keys())}")
    return perfil


def registrar_inversionista(datos):
    """Registro público de inversionistas desde la landing."""
    email = _limpiar(datos.get('email')).lower()
    password = datos.get('password') or ''
    nombre = _limpiar(datos.get('nombre_completo'))
    telefono = _limpiar(datos.get('telefono'))

    if not all([email, password, nombre, telefono]):
        raise ValidationError('Por favor completa todos los campos obligatorios.')
    _validar_password(password)
    if User.objects.filter(email__iexact=email).exists():
        raise ValidationError('Este correo ya está registrado. Intenta iniciar sesión.')

    return crear_identidad_con_perfil(
        email,
        password,
        nombre_completo=nombre,
        telefono=telefono,
        ciudad=_limpiar(datos.get('ciudad')),
        monto_inversion_esperado=datos.get('monto_inversion_esperado') or None,
        rol=Perfil.Rol.INVERSIONISTA,
        estado_verificacion=Perfil.EstadoVerificacion.PENDIENTE,
    )


def obtener_o_crear_usuario(datos, rol):
    """
    Devuelve el usuario con el email dado, creándolo si no existe. Usado por
    las colocaciones para registrar deudores e inversionistas en línea.

    Los usuarios nuevos quedan verificados con la contraseña temporal
    ``Temp<cédula>!``. Si el usuario ya existe, su perfil se actualiza.

    Returns:
        tuple: (usuario, creado)
    """
    email = _limpiar(datos.get('email')).lower()
    cedula = _limpiar(datos.get('documento_identidad'))
    nombre = _limpiar(datos.get('nombre_completo'))

    if not email or not cedula or not nombre:
        raise ValidationError('Nombre, cédula y correo son obligatorios.')

    datos_perfil = {
        'nombre_completo': nombre,
        'documento_identidad': cedula,
        'telefono': _limpiar(datos.get('telefono')),
        'direccion': _limpiar(datos.get('direccion')),
        'ciudad': _limpiar(datos.get('ciudad')),
        'rol': rol,
    }

    existente = User.objects.filter(email__iexact=email).first()
    if existente:
        logger.info(f"Usuario con email {email} ya existe, se reutiliza ({existente.id})")
        try:
            with transaction.atomic():
                # El rol de un perfil existente no se cambia desde una colocación
                Perfil.objects.update_or_create(
                    usuario=existente,
                    defaults={k: v for k, v in datos_perfil.items() if k != 'rol'} | {'email': email},
                    create_defaults={**datos_perfil, 'email': email},
                )
        except DatabaseError as e:
            logger.error(f"Error al actualizar perfil de {email}: {e}", exc_info=True)
            raise ValidationError(f'Error al actualizar perfil: {e}')
        return existente, False

    usuario = crear_identidad_con_perfil(
        email,
        f'Temp{cedula}!',
        estado_verificacion=Perfil.EstadoVerificacion.VERIFICADO,
        **datos_perfil,
    )
    return usuario, True


def actualizar_nombre(usuario, nombre):
    nombre = _limpiar(nombre)
    if len(nombre) < 2:
        raise ValidationError('El nombre debe tener al menos 2 caracteres.')
    perfil = get_object_or_404(Perfil, usuario=usuario)
    perfil.nombre_completo = nombre
    perfil.save(update_fields=['nombre_completo'])
    return perfil


def cambiar_contrasena(usuario, actual, nueva, confirmacion):
    if not actual or not nueva or not confirmacion:
        raise ValidationError('Todos los campos son requeridos.')
    _validar_password(nueva)
    if nueva != confirmacion:
        raise ValidationError('Las contraseñas no coinciden.')
    if not usuario.check_password(actual):
        raise ValidationError('La contraseña actual es incorrecta.')

    usuario.set_password(nueva)
    usuario.save(update_fields=['password'])
    logger.info(f"Usuario {usuario.id} cambió su contraseña")
    return usuario
