from django.db import connection
from django.http import JsonResponse
import structlog

logger = structlog.get_logger(__name__)


def health_check(request):
    """Report service and database availability."""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except Exception as exc:
        logger.error("Health check database probe failed", error=str(exc))
        return JsonResponse({'status': 'unhealthy', 'database': 'unavailable'}, status=503)
    return JsonResponse({'status': 'ok', 'database': 'ok'})


def error_404(request, exception):
    """Custom 404 handler."""
    return JsonResponse({
        'success': False,
        'error': {'code': 'not_found', 'message': 'Not found'},
    }, status=404)


def error_500(request):
    """Custom 500 handler."""
    return JsonResponse({
        'success': False,
        'error': {'code': 'server_error', 'message': 'Internal server error'},
    }, status=500)
