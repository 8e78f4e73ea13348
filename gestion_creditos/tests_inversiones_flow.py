import json
from datetime import date
from decimal import Decimal
from unittest.mock import patch

from dateutil.relativedelta import relativedelta
from django.core import mail
from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from gestion_creditos.models import Credito, Inversion
from gestion_creditos.services.inversiones import (
    calcular_total_confirmado,
    confirmar_inversion,
    crear_inversion,
    rechazar_inversion,
)
from gestion_creditos.tests import crear_usuario_con_rol
from usuarios.models import Perfil


@override_settings(
    EMAIL_BACKEND='django.core.mail.backends.locmem.EmailBackend',
    DEFAULT_FROM_EMAIL='no-reply@aluri.test'
)
class InversionesServiceTest(TestCase):
    def setUp(self):
        self.admin = crear_usuario_con_rol('tesoreria@aluri.test', Perfil.Rol.ADMIN)
        self.propietario = crear_usuario_con_rol('deudor@aluri.test', Perfil.Rol.PROPIETARIO, '10101010')
        self.inversionista = crear_usuario_con_rol(
            'inversionista@aluri.test', Perfil.Rol.INVERSIONISTA, '30303030', nombre='Laura Gómez'
        )
        self.credito = Credito.objects.create(
            codigo='CR-001',
            propietario=self.propietario,
            monto_solicitado=Decimal('100000000'),
            monto_fondeado=Decimal('60000000'),
            tasa_ea=Decimal('19.56'),
            estado=Credito.EstadoCredito.EN_FONDEO,
        )

    def test_monto_mayor_al_cupo_se_rechaza(self):
        with self.assertRaisesMessage(ValidationError, 'excede'):
            crear_inversion(self.credito.id, self.inversionista, Decimal('45000000'))
        self.assertFalse(Inversion.objects.exists())

    def test_monto_igual_al_cupo_queda_pendiente(self):
        inversion = crear_inversion(self.credito.id, self.inversionista, Decimal('40000000'))

        self.assertEqual(inversion.estado, Inversion.EstadoInversion.PENDIENTE_PAGO)
        self.credito.refresh_from_db()
        self.assertEqual(self.credito.monto_fondeado, Decimal('60000000'))

    def test_credito_fuera_de_fondeo_no_recibe_inversiones(self):
        self.credito.estado = Credito.EstadoCredito.ACTIVO
        self.credito.save()
        with self.assertRaisesMessage(ValidationError, 'ya no está disponible'):
            crear_inversion(self.credito.id, self.inversionista, Decimal('1000000'))

    def test_confirmar_suma_fondeo_y_activa_credito(self):
        inversion = crear_inversion(self.credito.id, self.inversionista, Decimal('40000000'))

        confirmar_inversion(inversion.id, self.admin, nota='Transferencia verificada')

        inversion.refresh_from_db()
        self.credito.refresh_from_db()
        hoy = timezone.localdate()
        self.assertEqual(inversion.estado, Inversion.EstadoInversion.CONFIRMADA)
        self.assertEqual(inversion.procesado_por, self.admin)
        self.assertIsNotNone(inversion.fecha_confirmacion)
        self.assertEqual(self.credito.monto_fondeado, Decimal('100000000'))
        self.assertEqual(self.credito.estado, Credito.EstadoCredito.ACTIVO)
        self.assertEqual(self.credito.fecha_desembolso, hoy)
        self.assertEqual(self.credito.fecha_proximo_pago, hoy + relativedelta(months=1))

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['inversionista@aluri.test'])
        self.assertIn('confirmada', mail.outbox[0].subject)
        self.assertIn('$40.000.000', mail.outbox[0].body)

    def test_confirmacion_parcial_mantiene_el_fondeo(self):
        inversion = crear_inversion(self.credito.id, self.inversionista, Decimal('10000000'))
        confirmar_inversion(inversion.id, self.admin)

        self.credito.refresh_from_db()
        self.assertEqual(self.credito.monto_fondeado, Decimal('70000000'))
        self.assertEqual(self.credito.estado, Credito.EstadoCredito.EN_FONDEO)
        self.assertEqual(calcular_total_confirmado(self.credito), Decimal('10000000'))

    def test_inversion_solo_se_procesa_una_vez(self):
        inversion = crear_inversion(self.credito.id, self.inversionista, Decimal('10000000'))
        confirmar_inversion(inversion.id, self.admin)

        with self.assertRaisesMessage(ValidationError, 'ya fue procesada'):
            confirmar_inversion(inversion.id, self.admin)
        with self.assertRaisesMessage(ValidationError, 'ya fue procesada'):
            rechazar_inversion(inversion.id, self.admin)

        self.credito.refresh_from_db()
        self.assertEqual(self.credito.monto_fondeado, Decimal('70000000'))

    def test_confirmar_no_supera_el_monto_solicitado(self):
        primera = crear_inversion(self.credito.id, self.inversionista, Decimal('40000000'))
        segunda = crear_inversion(self.credito.id, self.inversionista, Decimal('40000000'))

        confirmar_inversion(primera.id, self.admin)
        with self.assertRaisesMessage(ValidationError, 'No se puede confirmar'):
            confirmar_inversion(segunda.id, self.admin)

        segunda.refresh_from_db()
        self.credito.refresh_from_db()
        self.assertEqual(segunda.estado, Inversion.EstadoInversion.PENDIENTE_PAGO)
        self.assertEqual(self.credito.monto_fondeado, self.credito.monto_solicitado)

    def test_rechazar_no_mueve_el_fondeo(self):
        inversion = crear_inversion(self.credito.id, self.inversionista, Decimal('20000000'))

        rechazar_inversion(inversion.id, self.admin, motivo='Pago no recibido')

        inversion.refresh_from_db()
        self.credito.refresh_from_db()
        self.assertEqual(inversion.estado, Inversion.EstadoInversion.RECHAZADA)
        self.assertEqual(inversion.nota_admin, 'Pago no recibido')
        self.assertEqual(self.credito.monto_fondeado, Decimal('60000000'))
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('Pago no recibido', mail.outbox[0].body)

    def test_rechazo_sin_motivo(self):
        inversion = crear_inversion(self.credito.id, self.inversionista, Decimal('20000000'))
        rechazar_inversion(inversion.id, self.admin)

        inversion.refresh_from_db()
        self.assertEqual(inversion.nota_admin, 'Sin motivo especificado')

    def test_fallo_de_email_no_revierte_la_confirmacion(self):
        inversion = crear_inversion(self.credito.id, self.inversionista, Decimal('5000000'))

        with patch('gestion_creditos.email_service.EmailMultiAlternatives.send', side_effect=Exception('SMTP caído')):
            confirmar_inversion(inversion.id, self.admin)

        inversion.refresh_from_db()
        self.assertEqual(inversion.estado, Inversion.EstadoInversion.CONFIRMADA)
        self.assertEqual(len(mail.outbox), 0)


@override_settings(
    EMAIL_BACKEND='django.core.mail.backends.locmem.EmailBackend',
    DEFAULT_FROM_EMAIL='no-reply@aluri.test'
)
class InversionesVistasTest(TestCase):
    def setUp(self):
        self.admin = crear_usuario_con_rol('tesoreria@aluri.test', Perfil.Rol.ADMIN)
        self.propietario = crear_usuario_con_rol('deudor@aluri.test', Perfil.Rol.PROPIETARIO, '10101010')
        self.inversionista = crear_usuario_con_rol('inversionista@aluri.test', Perfil.Rol.INVERSIONISTA, '30303030')
        self.credito = Credito.objects.create(
            codigo='CR-002',
            propietario=self.propietario,
            monto_solicitado=Decimal('100000000'),
            monto_fondeado=Decimal('60000000'),
            estado=Credito.EstadoCredito.EN_FONDEO,
        )

    def _post_json(self, url, datos):
        return self.client.post(url, data=json.dumps(datos), content_type='application/json')

    def test_invertir_desde_el_marketplace(self):
        self.client.force_login(self.inversionista)
        url = reverse('inversionista:invertir', args=[self.credito.id])

        response = self._post_json(url, {'monto': '45000000'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('excede', response.json()['error'])

        response = self._post_json(url, {'monto': '40000000'})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['success'])
        self.assertEqual(response.json()['mensaje'], 'Inversión reservada exitosamente. Procede al pago.')
        self.assertTrue(Inversion.objects.filter(
            inversionista=self.inversionista, estado=Inversion.EstadoInversion.PENDIENTE_PAGO
        ).exists())

    def test_invertir_exige_post(self):
        self.client.force_login(self.inversionista)
        response = self.client.get(reverse('inversionista:invertir', args=[self.credito.id]))
        self.assertEqual(response.status_code, 405)

    def test_admin_confirma_y_rechaza_desde_tesoreria(self):
        confirmar = crear_inversion(self.credito.id, self.inversionista, Decimal('40000000'))
        rechazar = crear_inversion(self.credito.id, self.inversionista, Decimal('10000000'))
        self.client.force_login(self.admin)

        response = self.client.get(reverse('admin_panel:inversiones'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.context['inversiones']), 2)

        response = self._post_json(reverse('admin_panel:aprobar_inversion', args=[confirmar.id]), {'nota_admin': 'OK'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['estado_credito'], Credito.EstadoCredito.ACTIVO)

        response = self._post_json(reverse('admin_panel:rechazar_inversion', args=[rechazar.id]), {'motivo': 'Duplicada'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(mail.outbox), 2)

        response = self._post_json(reverse('admin_panel:aprobar_inversion', args=[rechazar.id]), {})
        self.assertEqual(response.status_code, 400)
        self.assertIn('ya fue procesada', response.json()['error'])

    def test_inversion_manual_del_admin_queda_pendiente(self):
        self.client.force_login(self.admin)
        url = reverse('admin_panel:agregar_inversion', args=[self.credito.id])

        response = self._post_json(url, {'inversionista_id': self.inversionista.id, 'monto': '25000000'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['estado'], Inversion.EstadoInversion.PENDIENTE_PAGO)

        self.credito.refresh_from_db()
        self.assertEqual(self.credito.monto_fondeado, Decimal('60000000'))

        response = self._post_json(url, {'inversionista_id': self.inversionista.id, 'monto': '50000000'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('excede', response.json()['error'])

    def test_inversion_manual_con_inversionista_nuevo(self):
        self.client.force_login(self.admin)
        response = self._post_json(reverse('admin_panel:agregar_inversion', args=[self.credito.id]), {
            'monto': '5000000',
            'fecha': '2025-03-01',
            'nuevo_inversionista': {
                'nombre_completo': 'Andrés Pérez',
                'documento_identidad': '77777777',
                'email': 'andres@aluri.test',
            },
        })
        self.assertEqual(response.status_code, 200)
        inversion = Inversion.objects.get(pk=response.json()['inversion_id'])
        self.assertEqual(inversion.inversionista.perfil.rol, Perfil.Rol.INVERSIONISTA)
        self.assertEqual(timezone.localtime(inversion.fecha_creacion).date(), date(2025, 3, 1))

    def test_registrar_pago_desde_el_panel(self):
        self.credito.estado = Credito.EstadoCredito.ACTIVO
        self.credito.save()
        self.client.force_login(self.admin)

        response = self._post_json(reverse('admin_panel:registrar_pago', args=[self.credito.id]), {
            'fecha_pago': '2025-04-05',
            'monto_capital': '0',
            'monto_interes': '1800000',
        })
        self.assertEqual(response.status_code, 200)

        response = self.client.get(reverse('admin_panel:pagos_credito', args=[self.credito.id]))
        self.assertEqual(len(response.json()['pagos']), 1)

    def test_invertir_con_monto_invalido_no_persiste(self):
        self.client.force_login(self.inversionista)
        url = reverse('inversionista:invertir', args=[self.credito.id])

        for monto in ['abc', 'NaN', 'Infinity', '-5000000', '0']:
            response = self._post_json(url, {'monto': monto})
            self.assertEqual(response.status_code, 400, monto)
            self.assertFalse(response.json()['success'])

        response = self._post_json(url, {'monto': 'abc'})
        self.assertEqual(response.json()['error'], 'Ingrese un monto válido.')
        self.assertFalse(Inversion.objects.filter(inversionista=self.inversionista).exists())

    def test_inversion_manual_usa_la_tasa_del_credito(self):
        self.credito.tasa_ea = Decimal('23.87')
        self.credito.save()
        self.client.force_login(self.admin)
        url = reverse('admin_panel:agregar_inversion', args=[self.credito.id])

        response = self._post_json(url, {'inversionista_id': self.inversionista.id, 'monto': '5000000'})
        inversion = Inversion.objects.get(pk=response.json()['inversion_id'])
        self.assertEqual(inversion.tasa_inversionista, Decimal('23.87'))

        response = self._post_json(url, {
            'inversionista_id': self.inversionista.id,
            'monto': '5000000',
            'tasa_inversionista': '20.5',
        })
        inversion = Inversion.objects.get(pk=response.json()['inversion_id'])
        self.assertEqual(inversion.tasa_inversionista, Decimal('20.50'))

    def test_inversion_manual_con_datos_invalidos(self):
        self.client.force_login(self.admin)
        url = reverse('admin_panel:agregar_inversion', args=[self.credito.id])

        response = self._post_json(url, {'inversionista_id': self.inversionista.id, 'monto': '-1000000'})
        self.assertEqual(response.status_code, 400)

        response = self._post_json(url, {'inversionista_id': self.inversionista.id, 'monto': 'mucho'})
        self.assertEqual(response.status_code, 400)

        response = self._post_json(url, {
            'inversionista_id': self.inversionista.id,
            'monto': '5000000',
            'fecha': '2024-13-45',
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Fecha invalida.')
        self.assertFalse(Inversion.objects.filter(credito=self.credito).exists())

    def test_registrar_pago_con_datos_invalidos(self):
        self.credito.estado = Credito.EstadoCredito.ACTIVO
        self.credito.save()
        self.client.force_login(self.admin)
        url = reverse('admin_panel:registrar_pago', args=[self.credito.id])

        response = self._post_json(url, {'fecha_pago': '2024-13-45', 'monto_capital': '1000000'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Fecha invalida.')

        response = self._post_json(url, {'fecha_pago': '2025-04-05', 'monto_interes': '-1800000'})
        self.assertEqual(response.status_code, 400)

        response = self._post_json(url, {'fecha_pago': '2025-04-05', 'monto_capital': 'NaN'})
        self.assertEqual(response.status_code, 400)

        self.assertFalse(self.credito.pagos.exists())
