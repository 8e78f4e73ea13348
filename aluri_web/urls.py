"""
URL configuration for aluri_web project.

Prefijos principales:
- /dashboard/admin/          → Back office (créditos, colocaciones, tesorería, usuarios)
- /dashboard/inversionista/  → Marketplace y portafolio del inversionista
- /dashboard/propietario/    → Créditos del propietario
- /login/, /auth/signout/, /inversionistas/ → Acceso y registro público

El acceso a /dashboard/<rol>/ lo controla usuarios.middleware.RolDashboardMiddleware.
"""
from django.contrib import admin
from django.urls import path, include
from django.views.generic import TemplateView, RedirectView

urlpatterns = [
    # ========================================
    # ADMINISTRACIÓN DJANGO
    # ========================================
    path('admin/', admin.site.urls),

    # ========================================
    # AUTENTICACIÓN (Django Allauth)
    # ========================================
    path('accounts/', include('allauth.urls')),
    path('', include('usuarios.urls')),

    # ========================================
    # PANELES POR ROL
    # ========================================
    # /dashboard sin rol lo redirige el middleware al panel del usuario
    path('dashboard/', RedirectView.as_view(url='/login/'), name='dashboard'),
    path('dashboard/admin/', include('gestion_creditos.urls_admin')),
    path('dashboard/inversionista/', include('paneles.urls_inversionista')),
    path('dashboard/propietario/', include('paneles.urls_propietario')),

    # ========================================
    # PÁGINA DE INICIO
    # ========================================
    path('', TemplateView.as_view(
        template_name='index.html'
    ), name='home'),
]
