from django import forms
from django.contrib.auth.models import User
from .models import Credito
from usuarios.models import Perfil


class PropietarioChoiceField(forms.ModelChoiceField):
    def label_from_instance(self, obj):
        perfil = getattr(obj, 'perfil', None)
        if perfil:
            return f"{perfil.nombre_completo} - {perfil.documento_identidad or 'sin documento'}"
        return obj.email


#? --------- FORMULARIO DE CREACIÓN DE CRÉDITO (BORRADOR) ------------
class CreditoForm(forms.ModelForm):
    propietario = PropietarioChoiceField(queryset=User.objects.none())

    class Meta:
        model = Credito
        fields = [
            'propietario',
            'codigo',
            'monto_solicitado',
            'tasa_nm',
            'plazo_meses',
            'tipo_pago',
            'comision_deudor',
            'direccion_inmueble',
            'ciudad_inmueble',
            'tipo_inmueble',
            'valor_comercial',
            'matricula_inmobiliaria',
            'fecha_estimada',
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.fields['propietario'].queryset = User.objects.filter(
            perfil__rol=Perfil.Rol.PROPIETARIO
        ).select_related('perfil').order_by('perfil__nombre_completo')
        self.fields['propietario'].empty_label = "Seleccione un deudor"
        self.fields['fecha_estimada'].widget = forms.DateInput(attrs={'type': 'date'})

        self.fields['propietario'].error_messages = {
            'required': 'El deudor es requerido.',
            'invalid_choice': 'Seleccione un deudor válido.',
        }
        self.fields['codigo'].error_messages = {
            'required': 'El código del crédito es requerido.',
            'unique': 'Ya existe un crédito con este código.',
        }
        self.fields['monto_solicitado'].error_messages = {
            'required': 'El monto solicitado es requerido.',
            'invalid': 'Ingrese un valor numérico válido.',
        }


#? --------- CODEUDORES: FILAS OPCIONALES DEL FORMULARIO DE CRÉDITO ------------
class CodeudorForm(forms.Form):
    nombre_completo = forms.CharField(max_length=150, required=False)
    documento_identidad = forms.CharField(max_length=20, required=False)
    email = forms.EmailField(required=False)
    telefono = forms.CharField(max_length=20, required=False)


CodeudorFormSet = forms.formset_factory(CodeudorForm, extra=2, max_num=5)
