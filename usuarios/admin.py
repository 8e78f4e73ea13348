from django.contrib import admin
from .models import Perfil


@admin.register(Perfil)
class PerfilAdmin(admin.ModelAdmin):
    list_display = ('nombre_completo', 'usuario', 'rol', 'estado_verificacion', 'documento_identidad', 'fecha_creacion')
    list_filter = ('rol', 'estado_verificacion')
    search_fields = ('nombre_completo', 'documento_identidad', 'email', 'usuario__username')
    readonly_fields = ('fecha_creacion',)
