from django.db import models
from django.conf import settings


#! MODELO DE PERFIL: DEFINE EL ROL Y EL PANEL AL QUE TIENE ACCESO CADA USUARIO
class Perfil(models.Model):
    class Rol(models.TextChoices):
        ADMIN = 'admin', 'Administrador'
        INVERSIONISTA = 'inversionista', 'Inversionista'
        PROPIETARIO = 'propietario', 'Propietario'

    class EstadoVerificacion(models.TextChoices):
        PENDIENTE = 'pending', 'Pendiente'
        VERIFICADO = 'verified', 'Verificado'
        RECHAZADO = 'rejected', 'Rechazado'

    usuario = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='perfil')
    rol = models.CharField(max_length=20, choices=Rol.choices, default=Rol.INVERSIONISTA)
    estado_verificacion = models.CharField(
        max_length=20,
        choices=EstadoVerificacion.choices,
        default=EstadoVerificacion.PENDIENTE
    )
    nombre_completo = models.CharField(max_length=150)
    documento_identidad = models.CharField(max_length=20, unique=True, null=True, blank=True)
    email = models.EmailField(blank=True)
    telefono = models.CharField(max_length=20, blank=True)
    direccion = models.CharField(max_length=255, blank=True)
    ciudad = models.CharField(max_length=100, blank=True)
    monto_inversion_esperado = models.DecimalField(
        max_digits=15, decimal_places=2, null=True, blank=True,
        help_text="Monto que el inversionista declaró al registrarse."
    )
    fecha_creacion = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'profiles'
        ordering = ['-fecha_creacion']
        verbose_name = 'Perfil'
        verbose_name_plural = 'Perfiles'

    def __str__(self):
        return f"{self.nombre_completo} ({self.get_rol_display()})"

    @property
    def ruta_dashboard(self):
        return f"/dashboard/{self.rol}/"
