import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import StoreError, RateLimitedError

logger = logging.getLogger(__name__)


def store_exception_handler(exc, context):
    """
    Converte exceções de domínio em respostas JSON.

    Exceções do próprio DRF (Http404, PermissionDenied, NotAuthenticated...)
    seguem para o handler padrão. Qualquer outra exceção vira 500.
    """
    if isinstance(exc, StoreError):
        response = Response(exc.to_dict(), status=exc.status_code)
        if isinstance(exc, RateLimitedError) and exc.retry_after is not None:
            response['Retry-After'] = str(exc.retry_after)
        return response

    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get('view')
    logger.exception(
        "Erro não tratado em %s", view.__class__.__name__ if view else 'view'
    )
    return Response(
        {'error': 'INTERNAL_ERROR', 'message': 'Erro interno do servidor'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )
