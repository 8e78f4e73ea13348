"""
Middleware de control de acceso a los paneles por rol.
"""
import logging

from django.contrib.auth.views import redirect_to_login
from django.shortcuts import redirect

from .models import Perfil

logger = logging.getLogger(__name__)

PREFIJO_DASHBOARD = '/dashboard'


class RolDashboardMiddleware:
    """
    Protege todas las rutas bajo /dashboard según el rol del perfil.

    - Sin sesión o sin perfil: redirige al login (falla cerrado).
    - /dashboard o una ruta de otro rol: redirige a /dashboard/<rol>/.

    El rol se consulta en cada request; no se guarda en la sesión.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        path = request.path

        if path == PREFIJO_DASHBOARD or path.startswith(PREFIJO_DASHBOARD + '/'):
            if not request.user.is_authenticated:
                return redirect_to_login(request.get_full_path(), '/login/')

            rol = Perfil.objects.filter(usuario=request.user).values_list('rol', flat=True).first()
            if not rol:
                logger.warning(f"Usuario {request.user.id} sin perfil intentó acceder a {path}")
                return redirect('/login/')

            raiz_rol = f"{PREFIJO_DASHBOARD}/{rol}/"
            if not (path + '/').startswith(raiz_rol):
                return redirect(raiz_rol)

            request.rol = rol

        return self.get_response(request)
