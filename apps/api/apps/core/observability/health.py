"""
Health check endpoints.

/healthz is liveness only. /readyz also verifies the database and the
returns engine settings, so a pod with a bad RETURNS_* value never
receives traffic.
"""
import logging
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import DatabaseError, connection
from django.http import JsonResponse
from django.views import View

from apps.returns.calculator import REFUND_POLICIES
from apps.returns.services import DAMAGED_STOCK_POLICIES

logger = logging.getLogger(__name__)


class HealthzView(View):
    """Liveness: 200 while the process can serve requests."""

    def get(self, request):
        health_data = {
            'status': 'ok',
            'version': getattr(settings, 'VERSION', 'unknown'),
        }

        commit_hash = getattr(settings, 'COMMIT_HASH', None)
        if commit_hash:
            health_data['commit'] = commit_hash

        return JsonResponse(health_data, status=200)


class ReadyzView(View):
    """Readiness: database reachable and returns settings usable."""

    def get(self, request):
        checks = {
            'database': self._check_database(),
            'returns_config': self._check_returns_config(),
        }
        ready = all(checks.values())

        return JsonResponse(
            {'status': 'ready' if ready else 'not_ready', 'checks': checks},
            status=200 if ready else 503,
        )

    def _check_database(self):
        try:
            with connection.cursor() as cursor:
                cursor.execute('SELECT 1')
            return True
        except DatabaseError as e:
            logger.error(
                'Database health check failed',
                extra={
                    'event': 'health_check_failed',
                    'check': 'database',
                    'error_type': e.__class__.__name__,
                }
            )
            return False

    def _check_returns_config(self):
        damaged = getattr(settings, 'RETURNS_DAMAGED_STOCK_POLICY', 'restock')
        refund = getattr(settings, 'RETURNS_DEFAULT_REFUND_POLICY', 'full')
        quantum = getattr(settings, 'RETURNS_MONEY_QUANTUM', '0.01')

        try:
            quantum_ok = Decimal(str(quantum)) > 0
        except InvalidOperation:
            quantum_ok = False

        if damaged in DAMAGED_STOCK_POLICIES and refund in REFUND_POLICIES and quantum_ok:
            return True

        logger.error(
            'Returns configuration invalid',
            extra={
                'event': 'health_check_failed',
                'check': 'returns_config',
                'damaged_stock_policy': damaged,
                'default_refund_policy': refund,
                'money_quantum': str(quantum),
            }
        )
        return False
