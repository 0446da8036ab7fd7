import logging

from django.contrib.auth import authenticate, login, logout
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from apps.core.permissions import IsStoreAdmin
from apps.core.rate_limit import enforce_rate_limit, client_ip
from .serializers import (
    UserSerializer,
    RegisterSerializer,
    LoginSerializer,
    PromoteSerializer,
)
from .services import AccountService

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    serializer = RegisterSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = AccountService.register(**serializer.validated_data)
    return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    enforce_rate_limit('login', client_ip(request))
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    user = authenticate(
        request,
        username=serializer.validated_data['email'].lower(),
        password=serializer.validated_data['password'],
    )
    if user is None:
        return Response(
            {'error': 'INVALID_CREDENTIALS', 'message': 'E-mail ou senha inválidos'},
            status=status.HTTP_401_UNAUTHORIZED
        )
    login(request, user)
    return Response(UserSerializer(user).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    logout(request)
    return Response({'status': 'ok'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    return Response(UserSerializer(request.user).data)


# =============================================================================
# Admin
# =============================================================================

@api_view(['GET'])
@permission_classes([IsStoreAdmin])
def admin_users(request):
    users = AccountService.list_users(
        search=request.query_params.get('search'),
        role=request.query_params.get('role'),
    )
    return Response({'users': UserSerializer(users, many=True).data})


@api_view(['POST'])
@permission_classes([IsStoreAdmin])
def admin_promote_user(request):
    serializer = PromoteSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = AccountService.promote(**serializer.validated_data)
    return Response({'status': 'ok', 'user': UserSerializer(user).data})
