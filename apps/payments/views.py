import logging

from rest_framework import serializers, status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from apps.core.exceptions import PaymentProviderError, ValidationError
from apps.orders.services import OrderService
from . import services

logger = logging.getLogger(__name__)


class CheckoutItemSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    variation_id = serializers.IntegerField(required=False, allow_null=True)
    quantity = serializers.IntegerField(min_value=1, default=1)


class PixCheckoutSerializer(serializers.Serializer):
    items = CheckoutItemSerializer(many=True, allow_empty=False)
    description = serializers.CharField(max_length=255, default='Compra A Rafa Criou')
    coupon_code = serializers.CharField(max_length=50, required=False, allow_blank=True)


class RegeneratePixSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()


class PaymentIntentSerializer(serializers.Serializer):
    items = CheckoutItemSerializer(many=True, allow_empty=False)
    email = serializers.EmailField(required=False)
    coupon_code = serializers.CharField(max_length=50, required=False, allow_blank=True)


# =============================================================================
# Pix (Mercado Pago)
# =============================================================================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def pix_checkout(request):
    serializer = PixCheckoutSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    result = services.create_pix_checkout(
        request.user,
        data['items'],
        data['description'],
        coupon_code=data.get('coupon_code') or None,
    )
    return Response(result, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def pix_regenerate(request):
    serializer = RegeneratePixSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    order = OrderService.get_order(serializer.validated_data['order_id'])
    return Response(services.regenerate_pix(order, request.user))


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def mercadopago_webhook(request):
    try:
        result = services.handle_mp_webhook(request.data, request.query_params, request.headers)
    except PaymentProviderError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)
    return Response(result)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def mercadopago_check_payment(request):
    payment_id = request.query_params.get('paymentId')
    if not payment_id:
        raise ValidationError('paymentId é obrigatório', field='payment_id')
    return Response(services.check_payment(payment_id, request.user))


# =============================================================================
# Stripe
# =============================================================================

@api_view(['POST'])
@permission_classes([AllowAny])
def stripe_create_payment_intent(request):
    serializer = PaymentIntentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    result = services.create_payment_intent(
        data['items'],
        user=request.user,
        email=data.get('email'),
        coupon_code=data.get('coupon_code') or None,
    )
    return Response(result, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([AllowAny])
def stripe_payment_status(request):
    intent_id = request.query_params.get('payment_intent')
    if not intent_id:
        raise ValidationError('payment_intent é obrigatório', field='payment_intent')
    return Response(services.stripe_payment_status(intent_id))


@api_view(['GET'])
@permission_classes([AllowAny])
def stripe_resume_payment(request):
    order_id = request.query_params.get('orderId')
    if not order_id:
        raise ValidationError('orderId é obrigatório', field='order_id')
    order = OrderService.get_order(order_id)
    return Response(services.resume_payment(order, user=request.user))


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def stripe_webhook(request):
    # Signature covers the raw body; request.data must not be read first
    payload = request.body
    result = services.handle_stripe_webhook(payload, request.headers.get('Stripe-Signature'))
    return Response(result)
