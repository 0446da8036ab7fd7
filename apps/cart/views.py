from rest_framework import serializers, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .services import Cart


class AddItemSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    variation_id = serializers.IntegerField(required=False, allow_null=True)
    quantity = serializers.IntegerField(min_value=1, default=1)


class UpdateItemSerializer(serializers.Serializer):
    quantity = serializers.IntegerField()


@api_view(['GET', 'DELETE'])
@permission_classes([AllowAny])
def cart_detail(request):
    cart = Cart(request.session)
    if request.method == 'DELETE':
        cart.clear()
    return Response(cart.summary())


@api_view(['POST'])
@permission_classes([AllowAny])
def cart_add(request):
    serializer = AddItemSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    cart = Cart(request.session)
    key = cart.add(**serializer.validated_data)
    return Response({'key': key, 'cart': cart.summary()}, status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([AllowAny])
def cart_item(request, item_key):
    cart = Cart(request.session)
    if request.method == 'DELETE':
        cart.remove(item_key)
    else:
        serializer = UpdateItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart.update(item_key, serializer.validated_data['quantity'])
    return Response(cart.summary())
