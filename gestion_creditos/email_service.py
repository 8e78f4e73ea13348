"""
Servicio de envío de emails para notificaciones a inversionistas.

Notificaciones:
- Inversión confirmada por tesorería
- Inversión rechazada por tesorería

Configuración:
    Usa EMAIL_BACKEND de Django (SMTP en producción, locmem en pruebas).
    Un fallo de envío se registra en el log y nunca revierte la operación.
"""
import logging
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.conf import settings

from .models import Inversion
from .services.fondeo import formatear_cop

logger = logging.getLogger(__name__)


def enviar_email_html(destinatario, asunto, template_html, context):
    """
    Envía un email con contenido HTML y texto plano como fallback.

    Args:
        destinatario (str): Email del destinatario
        asunto (str): Asunto del email
        template_html (str): Ruta al template HTML
        context (dict): Contexto para renderizar el template; 'mensaje_texto'
            se usa como cuerpo de texto plano.

    Returns:
        bool: True si se envió exitosamente, False en caso contrario
    """
    try:
        html_content = render_to_string(template_html, context)

        email = EmailMultiAlternatives(
            subject=asunto,
            body=context.get('mensaje_texto', ''),
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[destinatario]
        )
        email.attach_alternative(html_content, "text/html")
        email.send()

        logger.info(f"Email enviado exitosamente a {destinatario}: {asunto}")
        return True

    except Exception as e:
        logger.error(f"Error al enviar email a {destinatario}: {e}", exc_info=True)
        return False


def enviar_notificacion_inversion(inversion):
    """
    Notifica al inversionista el resultado de la revisión de tesorería.

    Args:
        inversion (Inversion): Inversión ya confirmada o rechazada
    """
    configuraciones = {
        Inversion.EstadoInversion.CONFIRMADA: {
            'asunto': f'Tu inversión en {inversion.credito.codigo} fue confirmada',
            'template': 'emails/inversion_confirmada.html',
            'mensaje': 'Recibimos tu pago y tu inversión quedó confirmada.',
        },
        Inversion.EstadoInversion.RECHAZADA: {
            'asunto': f'Actualización sobre tu inversión en {inversion.credito.codigo}',
            'template': 'emails/inversion_rechazada.html',
            'mensaje': 'No pudimos verificar el pago de tu inversión.',
        },
    }

    config = configuraciones.get(inversion.estado)
    if not config:
        logger.warning(f"No hay notificación configurada para el estado {inversion.estado}")
        return False

    usuario = inversion.inversionista
    if not usuario.email:
        logger.warning(f"El usuario {usuario.id} no tiene email, no se notifica la inversión {inversion.id}")
        return False

    nombre = getattr(getattr(usuario, 'perfil', None), 'nombre_completo', '') or usuario.get_username()
    monto = formatear_cop(inversion.monto_invertido)
    context = {
        'nombre': nombre,
        'inversion': inversion,
        'credito': inversion.credito,
        'monto': monto,
        'nota': inversion.nota_admin,
        'mensaje_texto': (
            f"Hola {nombre},\n\n"
            f"{config['mensaje']}\n"
            f"Crédito: {inversion.credito.codigo}\n"
            f"Monto: {monto}\n"
            f"{'Nota: ' + inversion.nota_admin if inversion.nota_admin else ''}\n"
        ),
    }
    return enviar_email_html(usuario.email, config['asunto'], config['template'], context)
