"""
URLs del panel del propietario: /dashboard/propietario/
"""
from django.urls import path
from . import views
from usuarios import views as usuarios_views

app_name = 'propietario'

urlpatterns = [
    path('', views.propietario_inicio_view, name='inicio'),
    path('creditos/', views.propietario_creditos_view, name='creditos'),
    path('configuracion/', usuarios_views.configuracion_view, name='configuracion'),
]
