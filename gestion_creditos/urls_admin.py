"""
URLs del panel de administración: /dashboard/admin/
"""
from django.urls import path
from . import views
from usuarios import views as usuarios_views

app_name = 'admin_panel'

urlpatterns = [
    path('', views.admin_dashboard_view, name='dashboard'),

    # Créditos
    path('creditos/', views.admin_creditos_view, name='creditos'),
    path('creditos/nuevo/', views.admin_crear_credito_view, name='crear_credito'),
    path('creditos/<int:credito_id>/', views.admin_detalle_credito_view, name='detalle_credito'),
    path('creditos/<int:credito_id>/publicar/', views.admin_publicar_credito_view, name='publicar_credito'),

    # Colocaciones
    path('colocaciones/', views.admin_colocaciones_view, name='colocaciones'),
    path('colocaciones/nueva/', views.admin_nueva_colocacion_view, name='nueva_colocacion'),
    path('colocaciones/buscar-deudor/', views.admin_buscar_deudor_view, name='buscar_deudor'),
    path('colocaciones/buscar-inversionista/', views.admin_buscar_inversionista_view, name='buscar_inversionista'),
    path('colocaciones/inversionistas/', views.admin_inversionistas_select_view, name='inversionistas_select'),
    path('colocaciones/<int:credito_id>/', views.admin_credito_modal_view, name='credito_modal'),
    path('colocaciones/<int:credito_id>/inversion/', views.admin_agregar_inversion_view, name='agregar_inversion'),
    path('colocaciones/<int:credito_id>/pago/', views.admin_registrar_pago_view, name='registrar_pago'),
    path('colocaciones/<int:credito_id>/pagos/', views.admin_pagos_credito_view, name='pagos_credito'),

    # Tesorería
    path('inversiones/', views.admin_inversiones_view, name='inversiones'),
    path('inversiones/<int:inversion_id>/aprobar/', views.admin_aprobar_inversion_view, name='aprobar_inversion'),
    path('inversiones/<int:inversion_id>/rechazar/', views.admin_rechazar_inversion_view, name='rechazar_inversion'),

    # Usuarios
    path('usuarios/', usuarios_views.admin_usuarios_view, name='usuarios'),
    path('usuarios/nuevo/', usuarios_views.admin_crear_usuario_view, name='crear_usuario'),
    path('usuarios/<int:usuario_id>/editar/', usuarios_views.admin_editar_usuario_view, name='editar_usuario'),

    path('configuracion/', usuarios_views.configuracion_view, name='configuracion'),
]
