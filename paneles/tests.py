from datetime import date
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse

from gestion_creditos.models import Credito, Inversion, PagoCredito
from gestion_creditos.tests import crear_usuario_con_rol
from usuarios.models import Perfil


class MarketplaceViewsTest(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.propietario = crear_usuario_con_rol('deudor@aluri.test', Perfil.Rol.PROPIETARIO, '10101010')
        cls.inversionista = crear_usuario_con_rol('inv@aluri.test', Perfil.Rol.INVERSIONISTA, '30303030')
        cls.en_fondeo = Credito.objects.create(
            codigo='CR-001',
            propietario=cls.propietario,
            monto_solicitado=Decimal('100000000'),
            monto_fondeado=Decimal('60000000'),
            valor_comercial=Decimal('300000000'),
            ciudad_inmueble='Bogotá',
            tipo_inmueble=Credito.TipoInmueble.APARTAMENTO,
            estado=Credito.EstadoCredito.EN_FONDEO,
        )
        cls.riesgoso = Credito.objects.create(
            codigo='CR-002',
            propietario=cls.propietario,
            monto_solicitado=Decimal('80000000'),
            valor_comercial=Decimal('100000000'),
            ciudad_inmueble='Pereira',
            estado=Credito.EstadoCredito.EN_FONDEO,
        )
        cls.activo = Credito.objects.create(
            codigo='CR-003',
            propietario=cls.propietario,
            monto_solicitado=Decimal('50000000'),
            monto_fondeado=Decimal('50000000'),
            estado=Credito.EstadoCredito.ACTIVO,
        )

    def setUp(self):
        self.client.force_login(self.inversionista)

    def test_listado_solo_muestra_creditos_en_fondeo(self):
        response = self.client.get(reverse('inversionista:marketplace'))

        self.assertEqual(response.status_code, 200)
        codigos = [ficha['credito'].codigo for ficha in response.context['fichas']]
        self.assertCountEqual(codigos, ['CR-001', 'CR-002'])

    def test_filtros_por_ciudad_y_banda(self):
        response = self.client.get(reverse('inversionista:marketplace'), {'search': 'pereira'})
        self.assertEqual([f['credito'].codigo for f in response.context['fichas']], ['CR-002'])

        response = self.client.get(reverse('inversionista:marketplace'), {'riesgo': 'A1'})
        self.assertEqual([f['credito'].codigo for f in response.context['fichas']], ['CR-001'])

    def test_detalle_de_oportunidad(self):
        response = self.client.get(reverse('inversionista:marketplace_detalle', args=[self.en_fondeo.id]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['cupo_disponible'], Decimal('40000000'))
        self.assertEqual(response.context['porcentaje_fondeo'], Decimal('60.00'))
        self.assertEqual(response.context['banda']['codigo'], 'A1')
        self.assertEqual(response.context['puntaje_riesgo'], 100)
        self.assertEqual(response.context['dias_ventana_fondeo'], 14)

    def test_detalle_de_credito_fuera_de_fondeo_no_existe(self):
        response = self.client.get(reverse('inversionista:marketplace_detalle', args=[self.activo.id]))
        self.assertEqual(response.status_code, 404)

    def test_propietario_no_entra_al_marketplace(self):
        self.client.force_login(self.propietario)
        response = self.client.get(reverse('inversionista:marketplace'))
        self.assertRedirects(response, '/dashboard/propietario/', fetch_redirect_response=False)


class MisInversionesViewsTest(TestCase):
    def setUp(self):
        self.propietario = crear_usuario_con_rol('deudor@aluri.test', Perfil.Rol.PROPIETARIO, '10101010')
        self.inversionista = crear_usuario_con_rol('inv@aluri.test', Perfil.Rol.INVERSIONISTA, '30303030')
        self.otro = crear_usuario_con_rol('otro@aluri.test', Perfil.Rol.INVERSIONISTA, '40404040')

        self.activo = Credito.objects.create(
            codigo='CR-010',
            propietario=self.propietario,
            monto_solicitado=Decimal('100000000'),
            monto_fondeado=Decimal('100000000'),
            tasa_ea=Decimal('20.00'),
            ciudad_inmueble='Cali',
            estado=Credito.EstadoCredito.ACTIVO,
        )
        self.en_fondeo = Credito.objects.create(
            codigo='CR-011',
            propietario=self.propietario,
            monto_solicitado=Decimal('40000000'),
            estado=Credito.EstadoCredito.EN_FONDEO,
        )
        Inversion.objects.create(
            credito=self.activo,
            inversionista=self.inversionista,
            monto_invertido=Decimal('10000000'),
            estado=Inversion.EstadoInversion.CONFIRMADA,
        )
        Inversion.objects.create(
            credito=self.en_fondeo,
            inversionista=self.inversionista,
            monto_invertido=Decimal('5000000'),
            estado=Inversion.EstadoInversion.PENDIENTE_PAGO,
        )
        Inversion.objects.create(
            credito=self.en_fondeo,
            inversionista=self.inversionista,
            monto_invertido=Decimal('1000000'),
            estado=Inversion.EstadoInversion.RECHAZADA,
        )
        PagoCredito.objects.create(
            credito=self.activo,
            fecha_pago=date(2025, 2, 1),
            monto_capital=Decimal('20000000'),
            monto_interes=Decimal('5000000'),
        )
        self.client.force_login(self.inversionista)

    def test_pestanas_de_mis_inversiones(self):
        response = self.client.get(reverse('inversionista:mis_inversiones'))

        self.assertEqual(response.status_code, 200)
        pestanas = response.context['pestanas']
        self.assertEqual(len(pestanas['activas']), 1)
        self.assertEqual(len(pestanas['en_fondeo']), 1)
        self.assertEqual(len(pestanas['finalizadas']), 0)
        self.assertEqual(pestanas['activas'][0]['distribucion']['capital_recuperado'], Decimal('2000000.00'))

    def test_detalle_de_la_inversion(self):
        response = self.client.get(reverse('inversionista:mis_inversion_detalle', args=['CR-010']))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['distribucion']['intereses_ganados'], Decimal('500000.00'))
        self.assertEqual(response.context['distribucion']['progreso_recuperacion'], Decimal('20.00'))
        self.assertEqual(response.context['pagos'][0]['total'], Decimal('2500000.00'))

    def test_detalle_sin_inversion_confirmada(self):
        response = self.client.get(reverse('inversionista:mis_inversion_detalle', args=['CR-011']))
        self.assertEqual(response.status_code, 404)

        self.client.force_login(self.otro)
        response = self.client.get(reverse('inversionista:mis_inversion_detalle', args=['CR-010']))
        self.assertEqual(response.status_code, 404)

    def test_inicio_con_resumen_del_portafolio(self):
        response = self.client.get(reverse('inversionista:inicio'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['total_invertido'], Decimal('10000000'))
        self.assertEqual(response.context['proyectos_activos'], 1)
        self.assertEqual(response.context['rentabilidad_ponderada'], Decimal('20.00'))
        self.assertEqual(response.context['pendientes'], 1)
        self.assertEqual(response.context['distribucion_ciudades'][0]['ciudad'], 'Cali')

    def test_perfil(self):
        response = self.client.get(reverse('inversionista:perfil'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['total_invertido'], Decimal('10000000'))
        self.assertEqual(response.context['creditos_invertidos'], 1)


class PropietarioViewsTest(TestCase):
    def setUp(self):
        self.propietario = crear_usuario_con_rol('deudor@aluri.test', Perfil.Rol.PROPIETARIO, '10101010')
        otro = crear_usuario_con_rol('otro.deudor@aluri.test', Perfil.Rol.PROPIETARIO, '20202020')
        Credito.objects.create(
            codigo='CR-020',
            propietario=self.propietario,
            monto_solicitado=Decimal('60000000'),
            monto_fondeado=Decimal('45000000'),
            estado=Credito.EstadoCredito.EN_FONDEO,
        )
        Credito.objects.create(
            codigo='CR-021',
            propietario=otro,
            monto_solicitado=Decimal('10000000'),
            estado=Credito.EstadoCredito.BORRADOR,
        )
        self.client.force_login(self.propietario)

    def test_inicio(self):
        response = self.client.get(reverse('propietario:inicio'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['total_creditos'], 1)
        self.assertEqual(response.context['creditos_activos'], 1)
        self.assertEqual(response.context['total_fondeado'], Decimal('45000000'))

    def test_mis_creditos_solo_propios(self):
        response = self.client.get(reverse('propietario:creditos'))

        filas = response.context['filas']
        self.assertEqual([f['credito'].codigo for f in filas], ['CR-020'])
        self.assertEqual(filas[0]['porcentaje_fondeo'], 75)
