"""
Context processors para usuarios.
"""


def perfil_processor(request):
    """
    Context processor para agregar el perfil y el rol del usuario al contexto,
    usados por la navegación de los paneles.
    """
    if request.user.is_authenticated:
        perfil = getattr(request.user, 'perfil', None)
        return {
            'perfil_usuario': perfil,
            'rol_usuario': perfil.rol if perfil else None,
        }

    return {
        'perfil_usuario': None,
        'rol_usuario': None,
    }
