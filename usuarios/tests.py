import json
from unittest.mock import patch

from django.contrib.auth.models import AnonymousUser, User
from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.http import HttpResponse
from django.test import RequestFactory, TestCase
from django.urls import reverse

from usuarios import services
from usuarios.adapter import AccountAdapter
from usuarios.middleware import RolDashboardMiddleware
from usuarios.models import Perfil


def crear_usuario_con_rol(email, rol, documento=None, password='clave123'):
    usuario = User.objects.create_user(username=email, email=email, password=password)
    Perfil.objects.create(
        usuario=usuario,
        rol=rol,
        nombre_completo='Usuario Demo',
        documento_identidad=documento,
        email=email,
    )
    return usuario


class RolDashboardMiddlewareTest(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.admin = crear_usuario_con_rol('admin@aluri.test', Perfil.Rol.ADMIN)
        cls.propietario = crear_usuario_con_rol('propietario@aluri.test', Perfil.Rol.PROPIETARIO, '10101010')
        cls.sin_perfil = User.objects.create_user(username='huerfano@aluri.test', email='huerfano@aluri.test', password='clave123')

    def test_anonimo_va_al_login(self):
        response = self.client.get('/dashboard/admin/')
        self.assertRedirects(response, '/login/?next=/dashboard/admin/', fetch_redirect_response=False)

    def test_usuario_sin_perfil_va_al_login(self):
        self.client.force_login(self.sin_perfil)
        response = self.client.get('/dashboard/inversionista/')
        self.assertRedirects(response, '/login/', fetch_redirect_response=False)

    def test_rol_distinto_se_envia_a_su_panel(self):
        self.client.force_login(self.propietario)
        for path in ['/dashboard/admin/', '/dashboard/admin', '/dashboard/admin/colocaciones/', '/dashboard/propietario-x/']:
            response = self.client.get(path)
            self.assertRedirects(response, '/dashboard/propietario/', fetch_redirect_response=False)

    def test_dashboard_raiz_redirige_al_panel_del_rol(self):
        self.client.force_login(self.admin)
        for path in ['/dashboard', '/dashboard/']:
            response = self.client.get(path)
            self.assertRedirects(response, '/dashboard/admin/', fetch_redirect_response=False)

    def test_rol_correcto_accede(self):
        self.client.force_login(self.propietario)
        response = self.client.get('/dashboard/propietario/')
        self.assertEqual(response.status_code, 200)

        self.client.force_login(self.admin)
        response = self.client.get(reverse('admin_panel:dashboard'))
        self.assertEqual(response.status_code, 200)

    def test_rutas_fuera_del_dashboard_no_se_protegen(self):
        response = self.client.get('/login/')
        self.assertEqual(response.status_code, 200)

    def test_middleware_asigna_el_rol_al_request(self):
        request = RequestFactory().get('/dashboard/propietario/creditos/')
        request.user = self.propietario
        middleware = RolDashboardMiddleware(lambda req: HttpResponse('ok'))

        response = middleware(request)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(request.rol, Perfil.Rol.PROPIETARIO)

    def test_middleware_anonimo(self):
        request = RequestFactory().get('/dashboard/inversionista/marketplace/')
        request.user = AnonymousUser()
        response = RolDashboardMiddleware(lambda req: HttpResponse('ok'))(request)
        self.assertEqual(response['Location'], '/login/?next=/dashboard/inversionista/marketplace/')

    def test_middleware_anonimo_escapa_la_ruta_de_retorno(self):
        request = RequestFactory().get('/dashboard/admin/creditos/', {'estado': 'active', 'page': '2'})
        request.user = AnonymousUser()
        response = RolDashboardMiddleware(lambda req: HttpResponse('ok'))(request)
        self.assertEqual(
            response['Location'],
            '/login/?next=/dashboard/admin/creditos/%3Festado%3Dactive%26page%3D2'
        )


class CrearIdentidadTest(TestCase):
    def test_crear_usuario_con_perfil(self):
        usuario = services.crear_usuario({
            'email': 'Nuevo@Aluri.test',
            'password': 'secreta1',
            'nombre_completo': 'Nuevo Usuario',
            'documento_identidad': '12345678',
            'rol': Perfil.Rol.PROPIETARIO,
        })
        self.assertEqual(usuario.email, 'nuevo@aluri.test')
        self.assertEqual(usuario.perfil.rol, Perfil.Rol.PROPIETARIO)
        self.assertEqual(usuario.perfil.estado_verificacion, Perfil.EstadoVerificacion.PENDIENTE)
        self.assertTrue(usuario.check_password('secreta1'))

    def test_validaciones(self):
        base = {
            'email': 'otro@aluri.test',
            'password': 'secreta1',
            'nombre_completo': 'Otro',
            'documento_identidad': '87654321',
            'rol': Perfil.Rol.INVERSIONISTA,
        }
        with self.assertRaisesMessage(ValidationError, 'Todos los campos son requeridos'):
            services.crear_usuario({**base, 'nombre_completo': ''})
        with self.assertRaisesMessage(ValidationError, 'Rol invalido'):
            services.crear_usuario({**base, 'rol': 'superusuario'})
        with self.assertRaisesMessage(ValidationError, 'al menos 6 caracteres'):
            services.crear_usuario({**base, 'password': '123'})

        crear_usuario_con_rol('otro@aluri.test', Perfil.Rol.INVERSIONISTA)
        with self.assertRaisesMessage(ValidationError, 'Ya existe un usuario con este correo'):
            services.crear_usuario(base)

    def test_documento_duplicado_no_deja_cuenta_sin_perfil(self):
        crear_usuario_con_rol('existente@aluri.test', Perfil.Rol.INVERSIONISTA, documento='11111111')

        with self.assertRaisesMessage(ValidationError, 'Error al crear perfil'):
            services.crear_usuario({
                'email': 'repetido@aluri.test',
                'password': 'secreta1',
                'nombre_completo': 'Documento Repetido',
                'documento_identidad': '11111111',
                'rol': Perfil.Rol.INVERSIONISTA,
            })

        self.assertFalse(User.objects.filter(email='repetido@aluri.test').exists())
        self.assertFalse(User.objects.filter(perfil__isnull=True).exists())

    def test_fallo_al_crear_perfil_elimina_la_cuenta(self):
        with patch.object(Perfil.objects, 'create', side_effect=IntegrityError('restricción violada')):
            with self.assertRaisesMessage(ValidationError, 'restricción violada'):
                services.crear_identidad_con_perfil(
                    'fallo@aluri.test', 'secreta1', nombre_completo='Fallo', rol=Perfil.Rol.PROPIETARIO
                )

        self.assertFalse(User.objects.filter(username='fallo@aluri.test').exists())

    def test_obtener_o_crear_usuario_reutiliza_la_cuenta_sin_cambiar_el_rol(self):
        existente = crear_usuario_con_rol('deudor@aluri.test', Perfil.Rol.PROPIETARIO, documento='22222222')

        usuario, creado = services.obtener_o_crear_usuario({
            'email': 'DEUDOR@aluri.test',
            'documento_identidad': '22222222',
            'nombre_completo': 'Nombre Actualizado',
            'ciudad': 'Cali',
        }, Perfil.Rol.INVERSIONISTA)

        self.assertFalse(creado)
        self.assertEqual(usuario, existente)
        existente.perfil.refresh_from_db()
        self.assertEqual(existente.perfil.rol, Perfil.Rol.PROPIETARIO)
        self.assertEqual(existente.perfil.nombre_completo, 'Nombre Actualizado')
        self.assertEqual(existente.perfil.ciudad, 'Cali')

    def test_obtener_o_crear_usuario_exige_datos_minimos(self):
        with self.assertRaises(ValidationError):
            services.obtener_o_crear_usuario({'email': 'sin.cedula@aluri.test', 'nombre_completo': 'X'}, Perfil.Rol.PROPIETARIO)


class RegistroInversionistaTest(TestCase):
    def test_registro_publico_inicia_sesion_y_redirige(self):
        response = self.client.post(reverse('usuarios:registro_inversionista'), {
            'nombre_completo': 'Camila Ríos',
            'email': 'camila@aluri.test',
            'telefono': '3001234567',
            'password': 'secreta1',
            'ciudad': 'Medellín',
            'monto_inversion_esperado': '20000000',
        })

        self.assertRedirects(response, '/dashboard/inversionista/mis-inversiones/', fetch_redirect_response=False)
        usuario = User.objects.get(email='camila@aluri.test')
        self.assertEqual(usuario.perfil.rol, Perfil.Rol.INVERSIONISTA)
        self.assertEqual(usuario.perfil.estado_verificacion, Perfil.EstadoVerificacion.PENDIENTE)
        self.assertEqual(int(self.client.session['_auth_user_id']), usuario.id)

    def test_correo_repetido(self):
        crear_usuario_con_rol('camila@aluri.test', Perfil.Rol.INVERSIONISTA)
        response = self.client.post(reverse('usuarios:registro_inversionista'), {
            'nombre_completo': 'Camila Ríos',
            'email': 'camila@aluri.test',
            'telefono': '3001234567',
            'password': 'secreta1',
        })
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Este correo ya está registrado')
        self.assertEqual(User.objects.filter(email='camila@aluri.test').count(), 1)


class ConfiguracionCuentaTest(TestCase):
    def setUp(self):
        self.usuario = crear_usuario_con_rol('inv@aluri.test', Perfil.Rol.INVERSIONISTA, password='actual1')

    def test_cambiar_contrasena(self):
        with self.assertRaisesMessage(ValidationError, 'no coinciden'):
            services.cambiar_contrasena(self.usuario, 'actual1', 'nueva123', 'otra123')
        with self.assertRaisesMessage(ValidationError, 'actual es incorrecta'):
            services.cambiar_contrasena(self.usuario, 'equivocada', 'nueva123', 'nueva123')
        with self.assertRaisesMessage(ValidationError, 'Todos los campos son requeridos'):
            services.cambiar_contrasena(self.usuario, '', 'nueva123', 'nueva123')

        services.cambiar_contrasena(self.usuario, 'actual1', 'nueva123', 'nueva123')
        self.usuario.refresh_from_db()
        self.assertTrue(self.usuario.check_password('nueva123'))

    def test_actualizar_nombre_desde_el_panel(self):
        self.client.force_login(self.usuario)
        response = self.client.post(reverse('inversionista:configuracion'), {
            'accion': 'perfil',
            'nombre_completo': 'Nombre Nuevo',
        })
        self.assertEqual(response.status_code, 302)
        self.usuario.perfil.refresh_from_db()
        self.assertEqual(self.usuario.perfil.nombre_completo, 'Nombre Nuevo')

    def test_nombre_muy_corto(self):
        with self.assertRaises(ValidationError):
            services.actualizar_nombre(self.usuario, 'A')


class AdminUsuariosViewsTest(TestCase):
    def setUp(self):
        self.admin = crear_usuario_con_rol('admin@aluri.test', Perfil.Rol.ADMIN)
        self.client.force_login(self.admin)

    def test_listado(self):
        response = self.client.get(reverse('admin_panel:usuarios'), {'rol': Perfil.Rol.ADMIN})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.context['perfiles']), 1)

    def test_crear_y_editar_usuario(self):
        response = self.client.post(reverse('admin_panel:crear_usuario'), data=json.dumps({
            'email': 'nuevo@aluri.test',
            'password': 'secreta1',
            'nombre_completo': 'Nuevo',
            'documento_identidad': '99999999',
            'rol': Perfil.Rol.INVERSIONISTA,
        }), content_type='application/json')
        self.assertEqual(response.status_code, 200)
        usuario_id = response.json()['usuario_id']

        response = self.client.post(
            reverse('admin_panel:editar_usuario', args=[usuario_id]),
            data=json.dumps({'estado_verificacion': Perfil.EstadoVerificacion.VERIFICADO}),
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Perfil.objects.get(usuario_id=usuario_id).estado_verificacion, Perfil.EstadoVerificacion.VERIFICADO)

        response = self.client.post(
            reverse('admin_panel:editar_usuario', args=[usuario_id]),
            data=json.dumps({}),
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'No hay datos para actualizar')

    def test_no_admin_no_crea_usuarios(self):
        inversionista = crear_usuario_con_rol('inv@aluri.test', Perfil.Rol.INVERSIONISTA)
        self.client.force_login(inversionista)
        response = self.client.post(reverse('admin_panel:crear_usuario'), data='{}', content_type='application/json')
        self.assertRedirects(response, '/dashboard/inversionista/', fetch_redirect_response=False)


class LoginPorRolTest(TestCase):
    def setUp(self):
        self.factory = RequestFactory()

    def test_adapter_redirige_segun_el_rol(self):
        esperado = {
            Perfil.Rol.ADMIN: '/dashboard/admin/colocaciones/',
            Perfil.Rol.PROPIETARIO: '/dashboard/propietario/',
            Perfil.Rol.INVERSIONISTA: '/dashboard/inversionista/mis-inversiones/',
        }
        for rol, ruta in esperado.items():
            usuario = crear_usuario_con_rol(f'{rol}@aluri.test', rol)
            request = self.factory.get('/login/')
            request.user = usuario
            self.assertEqual(AccountAdapter(request).get_login_redirect_url(request), ruta)

    def test_registro_de_allauth_cerrado(self):
        request = self.factory.get('/accounts/signup/')
        self.assertFalse(AccountAdapter(request).is_open_for_signup(request))

    def test_login_con_correo(self):
        crear_usuario_con_rol('propietario@aluri.test', Perfil.Rol.PROPIETARIO, password='secreta1')
        response = self.client.post(reverse('usuarios:login_propietario'), {
            'login': 'propietario@aluri.test',
            'password': 'secreta1',
        })
        self.assertRedirects(response, '/dashboard/propietario/', fetch_redirect_response=False)

    def test_signout(self):
        usuario = crear_usuario_con_rol('inv@aluri.test', Perfil.Rol.INVERSIONISTA)
        self.client.force_login(usuario)
        response = self.client.post(reverse('usuarios:signout'))
        self.assertRedirects(response, '/login/inversionista/', fetch_redirect_response=False)
        self.assertNotIn('_auth_user_id', self.client.session)
