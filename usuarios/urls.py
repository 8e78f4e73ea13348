from django.urls import path
from . import views

app_name = 'usuarios'

urlpatterns = [
    # Logins independientes por tipo de usuario
    path('login/', views.LoginRolView.as_view(), name='login'),
    path('login/inversionista/', views.LoginRolView.as_view(rol='inversionista'), name='login_inversionista'),
    path('login/propietario/', views.LoginRolView.as_view(rol='propietario'), name='login_propietario'),
    path('auth/signout/', views.signout_view, name='signout'),
    # Landing y registro público de inversionistas
    path('inversionistas/', views.landing_inversionistas_view, name='landing_inversionistas'),
    path('inversionistas/registro/', views.registro_inversionista_view, name='registro_inversionista'),
]
