"""
Comando Django para conciliar el monto fondeado de cada crédito contra la
suma de sus inversiones confirmadas.

Uso:
    python manage.py conciliar_fondeo            # solo reporta diferencias
    python manage.py conciliar_fondeo --aplicar  # corrige el monto fondeado
"""
import logging

from django.core.management.base import BaseCommand
from django.db import transaction

from gestion_creditos.models import Credito
from gestion_creditos.services.fondeo import formatear_cop
from gestion_creditos.services.inversiones import calcular_total_confirmado

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Compara el monto fondeado de cada crédito con sus inversiones confirmadas'

    def add_arguments(self, parser):
        parser.add_argument(
            '--aplicar',
            action='store_true',
            help='Actualiza el monto fondeado con la suma de inversiones confirmadas.',
        )

    def handle(self, *args, **options):
        aplicar = options['aplicar']
        self.stdout.write(self.style.WARNING('Iniciando conciliación de fondeo...'))

        diferencias = 0
        for credito_id in Credito.objects.order_by('codigo').values_list('id', flat=True):
            with transaction.atomic():
                credito = Credito.objects.select_for_update().get(pk=credito_id)
                total_confirmado = calcular_total_confirmado(credito)
                if total_confirmado == credito.monto_fondeado:
                    continue

                diferencias += 1
                self.stdout.write(
                    f'{credito.codigo}: fondeado {formatear_cop(credito.monto_fondeado)}, '
                    f'confirmado {formatear_cop(total_confirmado)}'
                )
                if aplicar:
                    credito.monto_fondeado = total_confirmado
                    credito.save(update_fields=['monto_fondeado', 'fecha_actualizacion'])
                    logger.info(f"Fondeo de {credito.codigo} conciliado a {total_confirmado}")

        if diferencias == 0:
            self.stdout.write(self.style.SUCCESS('✓ Todos los créditos están conciliados'))
        elif aplicar:
            self.stdout.write(self.style.SUCCESS(f'✓ {diferencias} crédito(s) conciliado(s)'))
        else:
            self.stdout.write(
                self.style.WARNING(f'{diferencias} crédito(s) con diferencias. Use --aplicar para corregir.')
            )
