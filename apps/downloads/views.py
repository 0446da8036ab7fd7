from rest_framework import serializers, status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from apps.core.permissions import IsStoreAdmin
from apps.core.rate_limit import client_ip, enforce_rate_limit
from .services import DownloadService


class GenerateLinkSerializer(serializers.Serializer):
    order_item_id = serializers.IntegerField()


class OrderDownloadSerializer(serializers.Serializer):
    itemId = serializers.IntegerField()
    orderId = serializers.UUIDField(required=False)
    payment_intent = serializers.CharField(required=False, max_length=255)


class FileUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    product_id = serializers.IntegerField(required=False, allow_null=True)


class FileDeleteSerializer(serializers.Serializer):
    key = serializers.CharField(max_length=500)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def generate_link(request):
    enforce_rate_limit('download', str(request.user.pk))
    serializer = GenerateLinkSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    return Response(DownloadService.generate_download_link(
        request.user,
        serializer.validated_data['order_item_id'],
        ip=client_ip(request),
        user_agent=request.META.get('HTTP_USER_AGENT', ''),
    ))


@api_view(['GET'])
@permission_classes([AllowAny])
def order_download(request):
    enforce_rate_limit('download', client_ip(request))
    serializer = OrderDownloadSerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    params = serializer.validated_data
    return Response(DownloadService.download_by_order(
        params['itemId'],
        order_id=params.get('orderId'),
        payment_intent=params.get('payment_intent'),
    ))


@api_view(['POST', 'DELETE'])
@permission_classes([IsStoreAdmin])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def admin_files(request):
    if request.method == 'DELETE':
        serializer = FileDeleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        DownloadService.delete_file(serializer.validated_data['key'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = FileUploadSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = DownloadService.upload_file(
        serializer.validated_data['file'],
        product_id=serializer.validated_data.get('product_id'),
    )
    return Response(data, status=status.HTTP_201_CREATED)
