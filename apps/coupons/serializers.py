from rest_framework import serializers

from .models import Coupon


# =============================================================================
# Admin
# =============================================================================

class CouponSerializer(serializers.ModelSerializer):
    product_ids = serializers.SerializerMethodField()
    variation_ids = serializers.SerializerMethodField()

    class Meta:
        model = Coupon
        fields = [
            'id', 'code', 'type', 'value', 'min_subtotal', 'max_uses',
            'max_uses_per_user', 'used_count', 'applies_to', 'stackable',
            'is_active', 'starts_at', 'ends_at', 'product_ids', 'variation_ids',
            'created_at', 'updated_at'
        ]

    def get_product_ids(self, obj):
        return [p.id for p in obj.products.all()]

    def get_variation_ids(self, obj):
        return [v.id for v in obj.variations.all()]


class CouponWriteSerializer(serializers.ModelSerializer):
    code = serializers.CharField(max_length=50)
    product_ids = serializers.ListField(child=serializers.IntegerField(), required=False)
    variation_ids = serializers.ListField(child=serializers.IntegerField(), required=False)

    class Meta:
        model = Coupon
        fields = [
            'code', 'type', 'value', 'min_subtotal', 'max_uses',
            'max_uses_per_user', 'applies_to', 'stackable', 'is_active',
            'starts_at', 'ends_at', 'product_ids', 'variation_ids'
        ]


# =============================================================================
# Checkout
# =============================================================================

class CouponItemSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    variation_id = serializers.IntegerField(required=False, allow_null=True)
    quantity = serializers.IntegerField(min_value=1, default=1)


class CouponValidateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    items = CouponItemSerializer(many=True, required=False)
