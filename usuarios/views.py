import logging

from allauth.account.views import LoginView
from django.contrib import messages
from django.contrib.auth import login, logout, update_session_auth_hash
from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.db.models import Q
from django.http import JsonResponse
from django.shortcuts import redirect, render
from django.views.decorators.http import require_POST

from . import services
from .decorators import admin_required
from .forms import CambioContrasenaForm, CrearUsuarioForm, NombrePerfilForm, RegistroInversionistaForm
from .models import Perfil
from .utils import datos_request

logger = logging.getLogger(__name__)


#? LOGIN CON ALLAUTH; LA PLANTILLA CAMBIA SEGÚN EL TIPO DE USUARIO
class LoginRolView(LoginView):
    template_name = 'usuarios/login.html'
    rol = None

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['rol_login'] = self.rol
        return context


@require_POST
def signout_view(request):
    logout(request)
    return redirect('/login/inversionista/')


def landing_inversionistas_view(request):
    return render(request, 'usuarios/landing_inversionistas.html', {'form': RegistroInversionistaForm()})


def registro_inversionista_view(request):
    """Registro público de inversionistas. Al terminar inicia sesión y envía al panel."""
    if request.method == 'POST':
        form = RegistroInversionistaForm(request.POST)
        if form.is_valid():
            try:
                usuario = services.registrar_inversionista(form.cleaned_data)
            except ValidationError as e:
                form.add_error(None, e.messages[0])
            else:
                login(request, usuario, backend='django.contrib.auth.backends.ModelBackend')
                messages.success(request, 'Tu cuenta fue creada. Bienvenido a Aluri.')
                return redirect(services.ruta_inicio_por_rol(Perfil.Rol.INVERSIONISTA))
    else:
        form = RegistroInversionistaForm()

    return render(request, 'usuarios/registro_inversionista.html', {'form': form})


@login_required
def configuracion_view(request):
    """
    Configuración de la cuenta, compartida por todos los roles.
    El campo 'accion' del POST indica si se actualiza el nombre o la contraseña.
    """
    perfil = getattr(request.user, 'perfil', None)
    form_nombre = NombrePerfilForm(initial={'nombre_completo': perfil.nombre_completo if perfil else ''})
    form_contrasena = CambioContrasenaForm()

    if request.method == 'POST':
        accion = request.POST.get('accion')
        try:
            if accion == 'perfil':
                services.actualizar_nombre(request.user, request.POST.get('nombre_completo'))
                messages.success(request, 'Perfil actualizado correctamente.')
            elif accion == 'contrasena':
                services.cambiar_contrasena(
                    request.user,
                    request.POST.get('contrasena_actual'),
                    request.POST.get('contrasena_nueva'),
                    request.POST.get('confirmacion'),
                )
                update_session_auth_hash(request, request.user)
                messages.success(request, 'Contraseña actualizada correctamente.')
            else:
                messages.error(request, 'Acción no reconocida.')
        except ValidationError as e:
            messages.error(request, e.messages[0])
        return redirect(request.path)

    return render(request, 'usuarios/configuracion.html', {
        'perfil': perfil,
        'form_nombre': form_nombre,
        'form_contrasena': form_contrasena,
    })


#? --------- ADMINISTRACIÓN DE USUARIOS ------------
@admin_required
def admin_usuarios_view(request):
    """Listado de usuarios con filtros por rol, estado de verificación y búsqueda."""
    perfiles = Perfil.objects.select_related('usuario').order_by('-fecha_creacion')

    rol = request.GET.get('rol', '')
    estado = request.GET.get('estado', '')
    search = request.GET.get('search', '').strip()
    if rol:
        perfiles = perfiles.filter(rol=rol)
    if estado:
        perfiles = perfiles.filter(estado_verificacion=estado)
    if search:
        perfiles = perfiles.filter(
            Q(nombre_completo__icontains=search) |
            Q(documento_identidad__icontains=search) |
            Q(email__icontains=search)
        )

    paginator = Paginator(perfiles, 25)
    context = {
        'perfiles': paginator.get_page(request.GET.get('page')),
        'form': CrearUsuarioForm(),
        'rol_filter': rol,
        'estado_filter': estado,
        'search': search,
        'roles_choices': Perfil.Rol.choices,
        'estados_choices': Perfil.EstadoVerificacion.choices,
    }
    return render(request, 'usuarios/admin_usuarios.html', context)


@admin_required
@require_POST
def admin_crear_usuario_view(request):
    try:
        usuario = services.crear_usuario(datos_request(request))
        return JsonResponse({'success': True, 'usuario_id': usuario.id})
    except ValidationError as e:
        return JsonResponse({'success': False, 'error': e.messages[0]}, status=400)
    except Exception as e:
        logger.error(f"Error inesperado al crear usuario: {e}", exc_info=True)
        return JsonResponse({'success': False, 'error': 'Error inesperado al crear el usuario.'}, status=500)


@admin_required
@require_POST
def admin_editar_usuario_view(request, usuario_id):
    try:
        perfil = services.actualizar_perfil_usuario(usuario_id, datos_request(request))
        return JsonResponse({
            'success': True,
            'rol': perfil.rol,
            'estado_verificacion': perfil.estado_verificacion,
        })
    except ValidationError as e:
        return JsonResponse({'success': False, 'error': e.messages[0]}, status=400)
