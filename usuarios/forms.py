from django import forms
from .models import Perfil


#? --------- FORMULARIO DE REGISTRO PÚBLICO DE INVERSIONISTAS ------------
class RegistroInversionistaForm(forms.Form):
    nombre_completo = forms.CharField(max_length=150)
    email = forms.EmailField()
    telefono = forms.CharField(max_length=20)
    password = forms.CharField(widget=forms.PasswordInput, min_length=6)
    ciudad = forms.CharField(max_length=100, required=False)
    monto_inversion_esperado = forms.DecimalField(max_digits=15, decimal_places=2, required=False, min_value=0)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.fields['nombre_completo'].error_messages = {'required': 'El nombre completo es requerido.'}
        self.fields['email'].error_messages = {
            'required': 'El correo electrónico es requerido.',
            'invalid': 'Ingrese un correo electrónico válido.',
        }
        self.fields['telefono'].error_messages = {'required': 'El teléfono es requerido.'}
        self.fields['password'].error_messages = {
            'required': 'La contraseña es requerida.',
            'min_length': 'La contraseña debe tener al menos 6 caracteres.',
        }


#? --------- FORMULARIO DE CREACIÓN DE USUARIOS (ADMIN) ------------
class CrearUsuarioForm(forms.Form):
    nombre_completo = forms.CharField(max_length=150)
    documento_identidad = forms.CharField(max_length=20)
    email = forms.EmailField()
    password = forms.CharField(widget=forms.PasswordInput, min_length=6)
    rol = forms.ChoiceField(choices=Perfil.Rol.choices)


#? --------- FORMULARIOS DE CONFIGURACIÓN DE LA CUENTA ------------
class NombrePerfilForm(forms.Form):
    nombre_completo = forms.CharField(max_length=150, min_length=2)


class CambioContrasenaForm(forms.Form):
    contrasena_actual = forms.CharField(widget=forms.PasswordInput)
    contrasena_nueva = forms.CharField(widget=forms.PasswordInput)
    confirmacion = forms.CharField(widget=forms.PasswordInput)
