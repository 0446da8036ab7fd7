import logging

from rest_framework import serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from apps.core.exceptions import ValidationError
from apps.core.permissions import IsStoreAdmin
from .services import OrderService

logger = logging.getLogger(__name__)


class CancelOrderSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()


class ConfirmationSerializer(serializers.Serializer):
    order_id = serializers.UUIDField(required=False)
    payment_intent = serializers.CharField(required=False)

    def validate(self, attrs):
        if not attrs.get('order_id') and not attrs.get('payment_intent'):
            raise serializers.ValidationError('order_id ou payment_intent é obrigatório')
        return attrs


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.CharField()


def _int_param(params, name, default, minimum=0, maximum=100):
    try:
        value = int(params.get(name, default))
    except (TypeError, ValueError):
        return default
    return max(minimum, min(value, maximum))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_orders(request):
    return Response({'orders': OrderService.my_orders(request.user)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_detail(request, order_id):
    return Response(OrderService.order_detail(order_id, request.user))


@api_view(['GET'])
@permission_classes([AllowAny])
def order_status(request):
    """Polled by the checkout page while a Pix payment is pending."""
    return Response(OrderService.poll_status(
        order_id=request.query_params.get('orderId'),
        payment_id=request.query_params.get('paymentId'),
    ))


@api_view(['GET'])
@permission_classes([AllowAny])
def order_by_payment_intent(request):
    intent_id = request.query_params.get('payment_intent')
    if not intent_id:
        raise ValidationError('payment_intent é obrigatório', field='payment_intent')
    order = OrderService.order_by_payment_intent(intent_id)
    return Response(OrderService.order_payload(order))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_order(request):
    serializer = CancelOrderSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    order = OrderService.get_order(serializer.validated_data['order_id'])
    return Response(OrderService.cancel_order(order, user=request.user))


@api_view(['POST'])
@permission_classes([AllowAny])
def send_confirmation(request):
    serializer = ConfirmationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    if serializer.validated_data.get('order_id'):
        order = OrderService.get_order(serializer.validated_data['order_id'])
    else:
        order = OrderService.order_by_payment_intent(serializer.validated_data['payment_intent'])
    OrderService.resend_confirmation(order)
    return Response({'success': True, 'email': order.email})


# =============================================================================
# Admin
# =============================================================================

@api_view(['GET'])
@permission_classes([IsStoreAdmin])
def admin_orders(request):
    params = request.query_params
    status_filter = params.get('status')
    if status_filter == 'all':
        status_filter = None
    return Response(OrderService.admin_list(
        status=status_filter,
        search=params.get('search'),
        limit=_int_param(params, 'limit', 50, minimum=1),
        offset=_int_param(params, 'offset', 0, maximum=100000),
    ))


@api_view(['GET', 'PATCH'])
@permission_classes([IsStoreAdmin])
def admin_order_detail(request, order_id):
    if request.method == 'PATCH':
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.get_order(order_id)
        changed = OrderService.update_status(order, serializer.validated_data['status'])
        logger.info(
            f"Admin {request.user.email} alterou pedido {order_id} para "
            f"{serializer.validated_data['status']} (mudou: {changed})"
        )
    return Response(OrderService.admin_detail(order_id))
