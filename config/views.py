from django.db import connection
from django.http import JsonResponse


def health_check(request):
    """Liveness probe that also verifies the database connection."""
    with connection.cursor() as cursor:
        cursor.execute('SELECT 1')
    return JsonResponse({'status': 'ok'})


def error_404(request, exception):
    """Unknown URL, in the same body shape as ledger errors."""
    return JsonResponse({
        'error': 'Not found',
        'code': 'not_found',
        'detail': {'path': request.path},
    }, status=404)


def error_500(request):
    return JsonResponse({
        'error': 'Internal server error',
        'code': 'server_error',
        'detail': {},
    }, status=500)
