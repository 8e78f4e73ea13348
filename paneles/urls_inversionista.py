"""
URLs del panel del inversionista: /dashboard/inversionista/
"""
from django.urls import path
from . import views
from usuarios import views as usuarios_views

app_name = 'inversionista'

urlpatterns = [
    path('', views.inversionista_inicio_view, name='inicio'),
    path('marketplace/', views.marketplace_view, name='marketplace'),
    path('marketplace/<int:credito_id>/', views.marketplace_detalle_view, name='marketplace_detalle'),
    path('marketplace/<int:credito_id>/invertir/', views.invertir_view, name='invertir'),
    path('mis-inversiones/', views.mis_inversiones_view, name='mis_inversiones'),
    path('mis-inversiones/<str:codigo>/', views.mis_inversion_detalle_view, name='mis_inversion_detalle'),
    path('perfil/', views.inversionista_perfil_view, name='perfil'),
    path('configuracion/', usuarios_views.configuracion_view, name='configuracion'),
]
