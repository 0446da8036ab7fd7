from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from apps.core.permissions import IsStoreAdmin
from .services import dashboard_stats


@api_view(['GET'])
@permission_classes([IsStoreAdmin])
def admin_stats(request):
    return Response(dashboard_stats())
