from django.contrib import admin
from .models import Credito, Codeudor, Inversion, PagoCredito


#? --------- INLINES DEL CRÉDITO ------------
class CodeudorInline(admin.TabularInline):
    model = Codeudor
    extra = 0
    readonly_fields = ('fecha_creacion',)


class InversionInline(admin.TabularInline):
    model = Inversion
    fk_name = 'credito'
    extra = 0
    fields = ('inversionista', 'monto_invertido', 'estado', 'fecha_creacion', 'fecha_confirmacion')
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class PagoCreditoInline(admin.TabularInline):
    model = PagoCredito
    extra = 0
    fields = ('fecha_pago', 'monto_capital', 'monto_interes', 'monto_mora', 'monto_total')
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


#? --------- ADMINISTRACION DE CREDITOS ------------
@admin.register(Credito)
class CreditoAdmin(admin.ModelAdmin):
    list_display = ('codigo', 'propietario', 'estado', 'monto_solicitado', 'monto_fondeado', 'ciudad_inmueble', 'fecha_creacion')
    list_filter = ('estado', 'tipo_pago', 'ciudad_inmueble')
    search_fields = ('codigo', 'propietario__email', 'propietario__perfil__nombre_completo')
    readonly_fields = ('monto_fondeado', 'tasa_ea', 'comision_aluri_pct', 'fecha_creacion', 'fecha_actualizacion')
    inlines = [CodeudorInline, InversionInline, PagoCreditoInline]

    def get_readonly_fields(self, request, obj=None):
        readonly_fields = list(super().get_readonly_fields(request, obj))
        # Un crédito pagado o cancelado ya no cambia de estado
        if obj and obj.estado in Credito.ESTADOS_FINALES:
            readonly_fields.append('estado')
        return readonly_fields


@admin.register(Inversion)
class InversionAdmin(admin.ModelAdmin):
    list_display = ('credito', 'inversionista', 'monto_invertido', 'estado', 'fecha_creacion', 'fecha_confirmacion')
    list_filter = ('estado',)
    search_fields = ('credito__codigo', 'inversionista__email')
    #! El estado y el monto solo cambian desde tesorería para mantener el fondeo consistente
    readonly_fields = ('estado', 'monto_invertido', 'fecha_confirmacion', 'procesado_por')


@admin.register(PagoCredito)
class PagoCreditoAdmin(admin.ModelAdmin):
    list_display = ('credito', 'fecha_pago', 'monto_capital', 'monto_interes', 'monto_mora', 'monto_total')
    list_filter = ('fecha_pago',)
    search_fields = ('credito__codigo',)

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
