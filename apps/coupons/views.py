from rest_framework import viewsets, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from apps.cart.services import Cart
from apps.core.permissions import IsStoreAdmin
from apps.orders.pricing import price_items, subtotal_of
from .models import Coupon
from .serializers import CouponSerializer, CouponWriteSerializer, CouponValidateSerializer
from .services import CouponService


@api_view(['POST'])
@permission_classes([AllowAny])
def validate_coupon(request):
    """Validate a code against the given items, or the session cart when none are sent."""
    serializer = CouponValidateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    items = serializer.validated_data.get('items')
    if not items:
        items = Cart(request.session).as_order_items()

    lines = price_items(items)
    result = CouponService.validate(
        serializer.validated_data['code'],
        lines,
        subtotal_of(lines),
        user=request.user,
    )
    return Response(result.to_dict())


class AdminCouponViewSet(viewsets.ModelViewSet):
    permission_classes = [IsStoreAdmin]
    queryset = Coupon.objects.prefetch_related('products', 'variations')
    serializer_class = CouponSerializer

    def get_serializer_class(self):
        if self.action in ('create', 'update', 'partial_update'):
            return CouponWriteSerializer
        return CouponSerializer

    def get_queryset(self):
        queryset = super().get_queryset()
        search = self.request.query_params.get('search')
        if search:
            queryset = queryset.filter(code__icontains=search.strip())
        active = self.request.query_params.get('is_active')
        if active in ('true', 'false'):
            queryset = queryset.filter(is_active=active == 'true')
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = CouponWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        coupon = CouponService.save_coupon(dict(serializer.validated_data), user=request.user)
        return Response(CouponSerializer(coupon).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        coupon = self.get_object()
        serializer = CouponWriteSerializer(
            coupon, data=request.data, partial=kwargs.get('partial', False)
        )
        serializer.is_valid(raise_exception=True)
        coupon = CouponService.save_coupon(dict(serializer.validated_data), coupon=coupon)
        return Response(CouponSerializer(coupon).data)
