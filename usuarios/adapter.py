#! Archivo: usuarios/adapter.py cuya finalidad es personalizar el comportamiento de django-allauth
from allauth.account.adapter import DefaultAccountAdapter

from .services import obtener_rol, ruta_inicio_por_rol


#? ADAPTER PARA REDIRECCIONAR SEGUN EL ROL DEL PERFIL
class AccountAdapter(DefaultAccountAdapter):
    def get_login_redirect_url(self, request):
        rol = obtener_rol(request.user)
        if rol:
            return ruta_inicio_por_rol(rol)

        # Sin perfil no hay panel al que enviarlo
        return super().get_login_redirect_url(request)

    def is_open_for_signup(self, request):
        # El registro público pasa por /inversionistas/registro/, que crea el perfil
        return False
