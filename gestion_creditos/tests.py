import json
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO
from types import SimpleNamespace

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from django.utils import timezone

from gestion_creditos.models import Credito, Inversion, PagoCredito
from gestion_creditos.services import colocaciones, distribucion, fondeo
from gestion_creditos.services.estados import (
    cambiar_estado_credito,
    es_transicion_credito_valida,
    es_transicion_inversion_valida,
)
from usuarios.models import Perfil


def crear_usuario_con_rol(email, rol, documento=None, nombre='Usuario Demo'):
    usuario = User.objects.create_user(username=email, email=email, password='clave123')
    Perfil.objects.create(
        usuario=usuario,
        rol=rol,
        nombre_completo=nombre,
        documento_identidad=documento,
        email=email,
        estado_verificacion=Perfil.EstadoVerificacion.VERIFICADO,
    )
    return usuario


def pago(capital, interes, mora=0, fecha_pago=None):
    return SimpleNamespace(
        monto_capital=Decimal(capital),
        monto_interes=Decimal(interes),
        monto_mora=Decimal(mora),
        fecha_pago=fecha_pago or date(2025, 1, 15),
    )


class FondeoCalculosTest(SimpleTestCase):
    def test_cupo_disponible(self):
        self.assertEqual(fondeo.calcular_cupo_disponible(100_000_000, 60_000_000), Decimal('40000000'))
        self.assertEqual(fondeo.calcular_cupo_disponible('100000000', None), Decimal('100000000'))

    def test_porcentaje_fondeo_acotado(self):
        self.assertEqual(fondeo.calcular_porcentaje_fondeo(100, 60), Decimal('60.00'))
        self.assertEqual(fondeo.calcular_porcentaje_fondeo(100, 130), Decimal('100.00'))
        self.assertEqual(fondeo.calcular_porcentaje_fondeo(100, -10), Decimal('0.00'))
        self.assertEqual(fondeo.calcular_porcentaje_fondeo(0, 50), Decimal('0.00'))

    def test_porcentaje_fondeo_es_idempotente_sobre_los_mismos_montos(self):
        primero = fondeo.calcular_porcentaje_fondeo(Decimal('75000000'), Decimal('25000000'))
        segundo = fondeo.calcular_porcentaje_fondeo(Decimal('75000000'), Decimal('25000000'))
        self.assertEqual(primero, segundo)
        self.assertEqual(primero, Decimal('33.33'))

    def test_ratio_sin_acotar_supera_cien(self):
        self.assertEqual(fondeo.calcular_ratio_fondeo(100, 150), Decimal('150'))

    def test_ltv_y_bandas(self):
        self.assertEqual(fondeo.calcular_ltv(100_000_000, 250_000_000), Decimal('40.00'))
        self.assertIsNone(fondeo.calcular_ltv(100_000_000, None))
        self.assertIsNone(fondeo.calcular_ltv(100_000_000, 0))

        self.assertEqual(fondeo.clasificar_ltv(Decimal('40'))['codigo'], 'A1')
        self.assertEqual(fondeo.clasificar_ltv(Decimal('40.01'))['codigo'], 'A2')
        self.assertEqual(fondeo.clasificar_ltv(Decimal('55'))['codigo'], 'A2')
        self.assertEqual(fondeo.clasificar_ltv(Decimal('70'))['codigo'], 'B1')
        self.assertEqual(fondeo.clasificar_ltv(Decimal('70.5'))['etiqueta'], 'Riesgo Alto')

    def test_ltv_desconocido_se_clasifica_como_cincuenta(self):
        banda = fondeo.clasificar_ltv(None)
        self.assertEqual(banda['codigo'], 'A2')
        self.assertEqual(banda['ltv'], Decimal('50'))

    def test_semaforo_ltv(self):
        self.assertEqual(fondeo.semaforo_ltv(None), '')
        self.assertEqual(fondeo.semaforo_ltv(45), 'bajo')
        self.assertEqual(fondeo.semaforo_ltv(60), 'medio')
        self.assertEqual(fondeo.semaforo_ltv(71), 'alto')

    def test_puntaje_riesgo(self):
        # 100 - 5 (LTV 45) + 5 (casa) + 5 (ciudad principal), acotado a 100
        self.assertEqual(fondeo.calcular_puntaje_riesgo(Decimal('45'), 'casa', 'Medellín'), 100)
        # 100 - 30 (LTV 75) - 5 (local)
        self.assertEqual(fondeo.calcular_puntaje_riesgo(Decimal('75'), 'local', 'Pasto'), 65)
        self.assertEqual(fondeo.nivel_riesgo(65), 'Medio')
        self.assertEqual(fondeo.nivel_riesgo(90), 'Riesgo Bajo')
        self.assertEqual(fondeo.nivel_riesgo(40), 'Riesgo Alto')

    def test_cobertura_garantia(self):
        self.assertEqual(fondeo.calcular_cobertura_garantia(Decimal('50')), Decimal('2.00'))

    def test_formatear_cop(self):
        self.assertEqual(fondeo.formatear_cop(40_000_000), '$40.000.000')
        self.assertEqual(fondeo.formatear_cop(Decimal('1500.40')), '$1.500')

    def test_validar_monto_inversion(self):
        self.assertEqual(fondeo.validar_monto_inversion('40000000', Decimal('40000000')), Decimal('40000000'))
        with self.assertRaisesMessage(ValidationError, 'mayor a cero'):
            fondeo.validar_monto_inversion(0, Decimal('40000000'))
        with self.assertRaisesMessage(ValidationError, 'ya no tiene cupo'):
            fondeo.validar_monto_inversion(1000, Decimal('0'))
        with self.assertRaisesMessage(ValidationError, 'Cupo restante: $40.000.000'):
            fondeo.validar_monto_inversion(45_000_000, Decimal('40000000'))

    def test_validar_monto_inversion_no_numerico(self):
        for monto in ['abc', 'NaN', 'sNaN', 'Infinity', '-Infinity']:
            with self.assertRaisesMessage(ValidationError, 'Ingrese un monto válido.'):
                fondeo.validar_monto_inversion(monto, Decimal('40000000'))

    def test_montos_rapidos_caben_en_el_cupo(self):
        self.assertEqual(fondeo.montos_rapidos(Decimal('7000000')), [Decimal('1000000'), Decimal('5000000')])

    def test_tasa_ea_desde_nominal_mensual(self):
        self.assertEqual(fondeo.calcular_tasa_ea(Decimal('1.5')), Decimal('19.56'))
        self.assertEqual(fondeo.calcular_tasa_ea(0), Decimal('0.00'))

    def test_siguiente_codigo(self):
        self.assertEqual(fondeo.siguiente_codigo(None), 'CR-001')
        self.assertEqual(fondeo.siguiente_codigo('CR-007'), 'CR-008')
        self.assertEqual(fondeo.siguiente_codigo('CR-999'), 'CR-1000')
        self.assertEqual(fondeo.siguiente_codigo('sin-formato'), 'CR-001')


class DistribucionTest(SimpleTestCase):
    def test_participacion_y_montos_recuperados(self):
        resultado = distribucion.calcular_distribucion(
            Decimal('10000000'),
            Decimal('100000000'),
            [pago('15000000', '3000000'), pago('5000000', '2000000', mora='100000')],
        )
        self.assertEqual(resultado['participacion'], Decimal('0.1'))
        self.assertEqual(resultado['porcentaje_participacion'], Decimal('10.00'))
        self.assertEqual(resultado['capital_recuperado'], Decimal('2000000.00'))
        self.assertEqual(resultado['intereses_ganados'], Decimal('500000.00'))
        self.assertEqual(resultado['total_recibido'], Decimal('2500000.00'))
        self.assertEqual(resultado['progreso_recuperacion'], Decimal('20.00'))

    def test_sin_pagos(self):
        resultado = distribucion.calcular_distribucion(Decimal('5000000'), Decimal('50000000'), [])
        self.assertEqual(resultado['capital_recuperado'], Decimal('0.00'))
        self.assertEqual(resultado['progreso_recuperacion'], Decimal('0.00'))

    def test_participacion_acotada(self):
        self.assertEqual(distribucion.calcular_participacion(200, 100), Decimal('1'))
        self.assertEqual(distribucion.calcular_participacion(50, 0), Decimal('0'))

    def test_participaciones_de_un_credito_no_superan_uno(self):
        montos = [Decimal('60000000'), Decimal('25000000'), Decimal('15000000')]
        total = sum(distribucion.calcular_participacion(m, Decimal('100000000')) for m in montos)
        self.assertLessEqual(total, Decimal('1'))

    def test_distribuir_pagos_por_fecha(self):
        detalle = distribucion.distribuir_pagos(
            [pago('1000000', '200000', fecha_pago=date(2025, 2, 1))], Decimal('0.25')
        )
        self.assertEqual(detalle, [{
            'fecha_pago': date(2025, 2, 1),
            'capital': Decimal('250000.00'),
            'interes': Decimal('50000.00'),
            'total': Decimal('300000.00'),
        }])


class TransicionesTest(SimpleTestCase):
    def test_transiciones_credito(self):
        self.assertTrue(es_transicion_credito_valida('draft', 'fundraising'))
        self.assertTrue(es_transicion_credito_valida('fundraising', 'active'))
        self.assertTrue(es_transicion_credito_valida('late', 'active'))
        self.assertFalse(es_transicion_credito_valida('draft', 'active'))
        self.assertFalse(es_transicion_credito_valida('paid', 'active'))
        self.assertFalse(es_transicion_credito_valida('cancelled', 'fundraising'))

    def test_transiciones_inversion(self):
        self.assertTrue(es_transicion_inversion_valida('pending_payment', 'confirmed'))
        self.assertTrue(es_transicion_inversion_valida('pending_payment', 'rejected'))
        self.assertFalse(es_transicion_inversion_valida('confirmed', 'rejected'))
        self.assertFalse(es_transicion_inversion_valida('rejected', 'rejected'))

    def test_cambiar_estado_invalido(self):
        credito = Credito(codigo='CR-100', estado=Credito.EstadoCredito.BORRADOR)
        with self.assertRaisesMessage(ValidationError, 'Transicion invalida'):
            cambiar_estado_credito(credito, Credito.EstadoCredito.PAGADO)
        self.assertEqual(credito.estado, Credito.EstadoCredito.BORRADOR)


class CreditoModelTest(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.propietario = crear_usuario_con_rol('deudor@aluri.test', Perfil.Rol.PROPIETARIO, '10101010')

    def _credito(self, **kwargs):
        datos = {
            'codigo': 'CR-001',
            'propietario': self.propietario,
            'monto_solicitado': Decimal('100000000'),
            'estado': Credito.EstadoCredito.ACTIVO,
        }
        datos.update(kwargs)
        return Credito.objects.create(**datos)

    def test_propiedades_de_fondeo(self):
        credito = self._credito(monto_fondeado=Decimal('60000000'), valor_comercial=Decimal('200000000'))
        self.assertEqual(credito.cupo_disponible, Decimal('40000000'))
        self.assertEqual(credito.porcentaje_fondeo, Decimal('60.00'))
        self.assertEqual(credito.ltv, Decimal('50.00'))

    def test_dias_en_mora(self):
        credito = self._credito(
            estado=Credito.EstadoCredito.ATRASADO,
            fecha_proximo_pago=timezone.localdate() - timedelta(days=12),
        )
        self.assertEqual(credito.dias_en_mora, 12)

        credito.estado = Credito.EstadoCredito.ACTIVO
        self.assertEqual(credito.dias_en_mora, 0)

    def test_credito_pagado_no_cambia_de_estado(self):
        credito = self._credito(estado=Credito.EstadoCredito.PAGADO)
        credito.estado = Credito.EstadoCredito.ACTIVO
        with self.assertRaises(ValidationError):
            credito.save()

    def test_pago_no_se_modifica_ni_elimina(self):
        credito = self._credito()
        registro = PagoCredito.objects.create(
            credito=credito,
            fecha_pago=date(2025, 3, 1),
            monto_capital=Decimal('1000000'),
            monto_interes=Decimal('150000'),
        )
        self.assertEqual(registro.monto_total, Decimal('1150000'))

        registro.notas = 'corrección'
        with self.assertRaisesMessage(ValidationError, 'no puede modificarse'):
            registro.save()
        with self.assertRaisesMessage(ValidationError, 'no puede eliminarse'):
            registro.delete()
        self.assertEqual(PagoCredito.objects.filter(credito=credito).count(), 1)


class CreditosServiceTest(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.propietario = crear_usuario_con_rol('deudor@aluri.test', Perfil.Rol.PROPIETARIO, '10101010')

    def test_crear_credito_en_borrador_con_codeudores(self):
        credito = colocaciones.crear_credito(
            {
                'propietario': self.propietario,
                'codigo': 'CR-010',
                'monto_solicitado': Decimal('80000000'),
                'tasa_nm': Decimal('1.5'),
                'comision_deudor': Decimal('2400000'),
            },
            [
                {'nombre_completo': 'Codeudor Uno', 'documento_identidad': '2020'},
                {'nombre_completo': '', 'documento_identidad': ''},
            ]
        )
        self.assertEqual(credito.estado, Credito.EstadoCredito.BORRADOR)
        self.assertEqual(credito.tasa_ea, Decimal('19.56'))
        self.assertEqual(credito.comision_aluri_pct, Decimal('3.00'))
        self.assertEqual(credito.codeudores.count(), 1)

    def test_crear_credito_sin_campos_obligatorios(self):
        with self.assertRaisesMessage(ValidationError, 'Faltan campos obligatorios'):
            colocaciones.crear_credito({'codigo': 'CR-011', 'monto_solicitado': 1000})

    def test_publicar_solo_desde_borrador(self):
        credito = Credito.objects.create(
            codigo='CR-012', propietario=self.propietario, monto_solicitado=Decimal('1000000')
        )
        colocaciones.publicar_credito(credito.id)
        credito.refresh_from_db()
        self.assertEqual(credito.estado, Credito.EstadoCredito.EN_FONDEO)

        with self.assertRaisesMessage(ValidationError, 'estado borrador'):
            colocaciones.publicar_credito(credito.id)

    def test_siguiente_codigo_usa_el_mayor_numero(self):
        Credito.objects.create(codigo='CR-009', propietario=self.propietario, monto_solicitado=Decimal('1'))
        Credito.objects.create(codigo='CR-010', propietario=self.propietario, monto_solicitado=Decimal('1'))
        self.assertEqual(colocaciones.siguiente_codigo_credito(), 'CR-011')


class RegistrarPagoTest(TestCase):
    def setUp(self):
        self.admin = crear_usuario_con_rol('admin@aluri.test', Perfil.Rol.ADMIN)
        self.propietario = crear_usuario_con_rol('deudor@aluri.test', Perfil.Rol.PROPIETARIO, '10101010')
        self.credito = Credito.objects.create(
            codigo='CR-020',
            propietario=self.propietario,
            monto_solicitado=Decimal('10000000'),
            monto_fondeado=Decimal('10000000'),
            estado=Credito.EstadoCredito.ACTIVO,
            fecha_proximo_pago=date(2025, 6, 1),
        )

    def test_pago_parcial_mantiene_el_credito_activo(self):
        registro = colocaciones.registrar_pago(self.credito.id, {
            'fecha_pago': '2025-05-30',
            'monto_capital': '4000000',
            'monto_interes': '150000',
        }, usuario=self.admin)

        self.credito.refresh_from_db()
        self.assertEqual(registro.monto_total, Decimal('4150000'))
        self.assertEqual(registro.registrado_por, self.admin)
        self.assertEqual(self.credito.estado, Credito.EstadoCredito.ACTIVO)

    def test_capital_completo_marca_el_credito_pagado(self):
        colocaciones.registrar_pago(self.credito.id, {'fecha_pago': '2025-05-30', 'monto_capital': '6000000'})
        colocaciones.registrar_pago(self.credito.id, {'fecha_pago': '2025-06-30', 'monto_capital': '4000000'})

        self.credito.refresh_from_db()
        self.assertEqual(self.credito.estado, Credito.EstadoCredito.PAGADO)
        self.assertIsNone(self.credito.fecha_proximo_pago)

    def test_validaciones(self):
        with self.assertRaisesMessage(ValidationError, 'Fecha de pago es requerida'):
            colocaciones.registrar_pago(self.credito.id, {'monto_capital': '100'})
        with self.assertRaisesMessage(ValidationError, 'mayor a cero'):
            colocaciones.registrar_pago(self.credito.id, {'fecha_pago': '2025-05-30'})
        with self.assertRaisesMessage(ValidationError, 'negativos'):
            colocaciones.registrar_pago(self.credito.id, {'fecha_pago': '2025-05-30', 'monto_capital': '-5'})
        with self.assertRaisesMessage(ValidationError, 'Fecha invalida'):
            colocaciones.registrar_pago(self.credito.id, {'fecha_pago': '2024-13-45', 'monto_capital': '100'})
        with self.assertRaisesMessage(ValidationError, 'Valor invalido para capital'):
            colocaciones.registrar_pago(self.credito.id, {'fecha_pago': '2025-05-30', 'monto_capital': 'cien'})
        self.assertFalse(self.credito.pagos.exists())

    def test_no_se_registran_pagos_en_borrador(self):
        borrador = Credito.objects.create(
            codigo='CR-021', propietario=self.propietario, monto_solicitado=Decimal('1000000')
        )
        with self.assertRaises(ValidationError):
            colocaciones.registrar_pago(borrador.id, {'fecha_pago': '2025-05-30', 'monto_capital': '100'})
        self.assertFalse(PagoCredito.objects.filter(credito=borrador).exists())


class ColocacionCompletaTest(TestCase):
    def setUp(self):
        self.admin = crear_usuario_con_rol('admin@aluri.test', Perfil.Rol.ADMIN)
        self.propietario = crear_usuario_con_rol('deudor@aluri.test', Perfil.Rol.PROPIETARIO, '10101010')
        self.inv1 = crear_usuario_con_rol('inv1@aluri.test', Perfil.Rol.INVERSIONISTA, '30303030')
        self.inv2 = crear_usuario_con_rol('inv2@aluri.test', Perfil.Rol.INVERSIONISTA, '40404040')

    def _datos(self, **kwargs):
        datos = {
            'codigo': 'CR-030',
            'monto_solicitado': '100000000',
            'tasa_nm': '1.8',
            'plazo_meses': '24',
            'comision_deudor': '3000000',
            'deudor_id': self.propietario.id,
            'inmueble': {
                'direccion': 'Calle 10 # 20-30',
                'ciudad': 'Bogotá',
                'tipo_inmueble': 'casa',
                'valor_comercial': '250000000',
            },
            'inversionistas': [
                {'inversionista_id': self.inv1.id, 'monto': '60000000'},
                {'inversionista_id': self.inv2.id, 'monto': '40000000'},
            ],
        }
        datos.update(kwargs)
        return datos

    def test_colocacion_fondeada_queda_activa(self):
        credito = colocaciones.crear_colocacion_completa(self._datos(), usuario_admin=self.admin)

        self.assertEqual(credito.estado, Credito.EstadoCredito.ACTIVO)
        self.assertEqual(credito.monto_fondeado, Decimal('100000000'))
        self.assertEqual(credito.ltv, Decimal('40.00'))
        self.assertIsNotNone(credito.fecha_proximo_pago)
        self.assertEqual(
            Inversion.objects.filter(credito=credito, estado=Inversion.EstadoInversion.CONFIRMADA).count(), 2
        )

    def test_colocacion_parcial_queda_en_fondeo(self):
        credito = colocaciones.crear_colocacion_completa(self._datos(inversionistas=[
            {'inversionista_id': self.inv1.id, 'monto': '30000000'},
        ]))
        self.assertEqual(credito.estado, Credito.EstadoCredito.EN_FONDEO)
        self.assertEqual(credito.cupo_disponible, Decimal('70000000'))

    def test_colocacion_crea_deudor_e_inversionista_nuevos(self):
        credito = colocaciones.crear_colocacion_completa(self._datos(
            deudor_id=None,
            nuevo_deudor={
                'nombre_completo': 'Nuevo Deudor',
                'documento_identidad': '55555555',
                'email': 'nuevo.deudor@aluri.test',
            },
            inversionistas=[{
                'nuevo_inversionista': {
                    'nombre_completo': 'Nueva Inversionista',
                    'documento_identidad': '66666666',
                    'email': 'nueva.inv@aluri.test',
                },
                'monto': '100000000',
            }],
        ))

        deudor = User.objects.get(email='nuevo.deudor@aluri.test')
        self.assertEqual(credito.propietario, deudor)
        self.assertEqual(deudor.perfil.rol, Perfil.Rol.PROPIETARIO)
        self.assertEqual(deudor.perfil.estado_verificacion, Perfil.EstadoVerificacion.VERIFICADO)
        self.assertTrue(deudor.check_password('Temp55555555!'))
        self.assertTrue(User.objects.filter(email='nueva.inv@aluri.test', perfil__rol=Perfil.Rol.INVERSIONISTA).exists())

    def test_validaciones_de_colocacion(self):
        with self.assertRaisesMessage(ValidationError, 'Codigo y monto son obligatorios'):
            colocaciones.crear_colocacion_completa(self._datos(codigo=''))
        with self.assertRaisesMessage(ValidationError, 'Debe seleccionar o crear un deudor'):
            colocaciones.crear_colocacion_completa(self._datos(deudor_id=None))
        with self.assertRaisesMessage(ValidationError, 'Maximo 5 inversionistas'):
            colocaciones.crear_colocacion_completa(self._datos(
                inversionistas=[{'inversionista_id': self.inv1.id, 'monto': '1000000'}] * 6
            ))
        with self.assertRaisesMessage(ValidationError, 'excede el monto del credito'):
            colocaciones.crear_colocacion_completa(self._datos(inversionistas=[
                {'inversionista_id': self.inv1.id, 'monto': '80000000'},
                {'inversionista_id': self.inv2.id, 'monto': '40000000'},
            ]))
        self.assertFalse(Credito.objects.filter(codigo='CR-030').exists())

    def test_monto_negativo_no_compensa_el_techo(self):
        with self.assertRaisesMessage(ValidationError, 'no pueden ser negativos'):
            colocaciones.crear_colocacion_completa(self._datos(inversionistas=[
                {'inversionista_id': self.inv1.id, 'monto': '150000000'},
                {'inversionista_id': self.inv2.id, 'monto': '-60000000'},
            ]))
        self.assertFalse(Credito.objects.filter(codigo='CR-030').exists())
        self.assertFalse(Inversion.objects.exists())

    def test_montos_y_plazo_invalidos(self):
        with self.assertRaisesMessage(ValidationError, 'Plazo invalido'):
            colocaciones.crear_colocacion_completa(self._datos(plazo_meses='doce'))
        with self.assertRaisesMessage(ValidationError, 'Plazo invalido'):
            colocaciones.crear_colocacion_completa(self._datos(plazo_meses='-3'))
        with self.assertRaisesMessage(ValidationError, 'Valor invalido para monto'):
            colocaciones.crear_colocacion_completa(self._datos(monto_solicitado='NaN'))
        with self.assertRaisesMessage(ValidationError, 'Valor invalido para monto'):
            colocaciones.crear_colocacion_completa(self._datos(inversionistas=[
                {'inversionista_id': self.inv1.id, 'monto': 'sesenta'},
            ]))
        self.assertFalse(Credito.objects.filter(codigo='CR-030').exists())

    def test_plazo_vacio_usa_doce_meses(self):
        credito = colocaciones.crear_colocacion_completa(self._datos(plazo_meses=''))
        self.assertEqual(credito.plazo_meses, 12)

    def test_buscar_perfil_por_cedula(self):
        self.assertEqual(colocaciones.buscar_perfil_por_cedula('123'), {'encontrado': False})

        resultado = colocaciones.buscar_perfil_por_cedula('30303030', rol=Perfil.Rol.INVERSIONISTA)
        self.assertTrue(resultado['encontrado'])
        self.assertEqual(resultado['id'], self.inv1.id)

        self.assertFalse(
            colocaciones.buscar_perfil_por_cedula('30303030', rol=Perfil.Rol.PROPIETARIO)['encontrado']
        )


class ConciliarFondeoCommandTest(TestCase):
    def setUp(self):
        propietario = crear_usuario_con_rol('deudor@aluri.test', Perfil.Rol.PROPIETARIO, '10101010')
        inversionista = crear_usuario_con_rol('inv@aluri.test', Perfil.Rol.INVERSIONISTA, '30303030')
        self.credito = Credito.objects.create(
            codigo='CR-040',
            propietario=propietario,
            monto_solicitado=Decimal('50000000'),
            monto_fondeado=Decimal('35000000'),
            estado=Credito.EstadoCredito.EN_FONDEO,
        )
        Inversion.objects.create(
            credito=self.credito,
            inversionista=inversionista,
            monto_invertido=Decimal('20000000'),
            estado=Inversion.EstadoInversion.CONFIRMADA,
        )

    def test_reporta_sin_aplicar(self):
        salida = StringIO()
        call_command('conciliar_fondeo', stdout=salida)

        self.assertIn('CR-040', salida.getvalue())
        self.credito.refresh_from_db()
        self.assertEqual(self.credito.monto_fondeado, Decimal('35000000'))

    def test_aplicar_corrige_el_fondeo(self):
        call_command('conciliar_fondeo', '--aplicar', stdout=StringIO())

        self.credito.refresh_from_db()
        self.assertEqual(self.credito.monto_fondeado, Decimal('20000000'))


class AdminCreditosViewsTest(TestCase):
    def setUp(self):
        self.admin = crear_usuario_con_rol('admin@aluri.test', Perfil.Rol.ADMIN)
        self.propietario = crear_usuario_con_rol('deudor@aluri.test', Perfil.Rol.PROPIETARIO, '10101010')
        self.client.force_login(self.admin)

    def test_crear_y_publicar_credito(self):
        response = self.client.get(reverse('admin_panel:crear_credito'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['form'].initial['codigo'], 'CR-001')

        response = self.client.post(reverse('admin_panel:crear_credito'), {
            'propietario': self.propietario.id,
            'codigo': 'CR-001',
            'monto_solicitado': '50000000',
            'tasa_nm': '1.6',
            'plazo_meses': '12',
            'tipo_pago': Credito.TipoPago.SOLO_INTERES,
            'comision_deudor': '1500000',
            'ciudad_inmueble': 'Bogotá',
            'valor_comercial': '150000000',
            'codeudores-TOTAL_FORMS': '2',
            'codeudores-INITIAL_FORMS': '0',
            'codeudores-MIN_NUM_FORMS': '0',
            'codeudores-MAX_NUM_FORMS': '5',
            'codeudores-0-nombre_completo': 'Codeudor Uno',
            'codeudores-0-documento_identidad': '20202020',
        })
        credito = Credito.objects.get(codigo='CR-001')
        self.assertRedirects(response, reverse('admin_panel:detalle_credito', args=[credito.id]))
        self.assertEqual(credito.estado, Credito.EstadoCredito.BORRADOR)
        self.assertEqual(credito.codeudores.count(), 1)

        response = self.client.post(reverse('admin_panel:publicar_credito', args=[credito.id]))
        self.assertRedirects(response, reverse('admin_panel:detalle_credito', args=[credito.id]))
        credito.refresh_from_db()
        self.assertEqual(credito.estado, Credito.EstadoCredito.EN_FONDEO)

    def test_tablas_del_panel(self):
        Credito.objects.create(
            codigo='CR-005',
            propietario=self.propietario,
            monto_solicitado=Decimal('40000000'),
            valor_comercial=Decimal('100000000'),
            estado=Credito.EstadoCredito.EN_FONDEO,
        )
        for nombre in ['dashboard', 'creditos', 'colocaciones', 'nueva_colocacion']:
            response = self.client.get(reverse(f'admin_panel:{nombre}'))
            self.assertEqual(response.status_code, 200, nombre)

        response = self.client.get(reverse('admin_panel:colocaciones'))
        fila = response.context['creditos'][0]
        self.assertEqual(fila['ltv'], Decimal('40.00'))
        self.assertEqual(fila['semaforo_ltv'], 'bajo')

        response = self.client.get(reverse('admin_panel:dashboard'))
        self.assertEqual(response.context['creditos_en_fondeo'], 1)

    def test_nueva_colocacion_por_json(self):
        inversionista = crear_usuario_con_rol('inv@aluri.test', Perfil.Rol.INVERSIONISTA, '30303030')
        response = self.client.post(reverse('admin_panel:nueva_colocacion'), data=json.dumps({
            'codigo': 'CR-050',
            'monto_solicitado': '20000000',
            'tasa_nm': '1.5',
            'deudor_id': self.propietario.id,
            'inversionistas': [{'inversionista_id': inversionista.id, 'monto': '20000000'}],
        }), content_type='application/json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['codigo'], 'CR-050')
        self.assertEqual(Credito.objects.get(codigo='CR-050').estado, Credito.EstadoCredito.ACTIVO)

        response = self.client.post(reverse('admin_panel:nueva_colocacion'), data=json.dumps({
            'codigo': 'CR-051',
            'monto_solicitado': '20000000',
        }), content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Debe seleccionar o crear un deudor.')

    def test_nueva_colocacion_con_datos_invalidos_responde_400(self):
        inversionista = crear_usuario_con_rol('inv@aluri.test', Perfil.Rol.INVERSIONISTA, '30303030')
        url = reverse('admin_panel:nueva_colocacion')
        base = {
            'codigo': 'CR-060',
            'monto_solicitado': '100000000',
            'deudor_id': self.propietario.id,
        }

        response = self.client.post(url, data=json.dumps(dict(base, plazo_meses='doce')), content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Plazo invalido.')

        response = self.client.post(url, data=json.dumps(dict(base, inversionistas=[
            {'inversionista_id': inversionista.id, 'monto': '150000000'},
            {'inversionista_id': inversionista.id, 'monto': '-60000000'},
        ])), content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Credito.objects.filter(codigo='CR-060').exists())

    def test_buscar_deudor_por_cedula(self):
        response = self.client.get(reverse('admin_panel:buscar_deudor'), {'cedula': '10101010'})
        self.assertTrue(response.json()['encontrado'])
        self.assertEqual(response.json()['id'], self.propietario.id)
