from functools import wraps
from django.shortcuts import redirect
from django.contrib import messages
from .models import Perfil


def rol_requerido(*roles):
    """
    Decorador que verifica que el usuario logueado tenga un perfil con alguno
    de los roles indicados. Si no lo tiene, redirige al login con un mensaje
    de error. Si lo tiene, añade el perfil al request para fácil acceso en la vista.
    """
    def decorador(view_func):
        @wraps(view_func)
        def _wrapped_view(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return redirect(f'/login/?next={request.path}')
            try:
                perfil = request.user.perfil
            except Perfil.DoesNotExist:
                messages.error(request, "No tiene los permisos necesarios para acceder a esta sección.")
                return redirect('/login/')
            if perfil.rol not in roles:
                messages.error(request, "No tiene los permisos necesarios para acceder a esta sección.")
                return redirect(perfil.ruta_dashboard)
            request.perfil = perfil
            return view_func(request, *args, **kwargs)
        return _wrapped_view
    return decorador


admin_required = rol_requerido(Perfil.Rol.ADMIN)
inversionista_required = rol_requerido(Perfil.Rol.INVERSIONISTA)
propietario_required = rol_requerido(Perfil.Rol.PROPIETARIO)
