"""
Thin wrappers around the Mercado Pago and Stripe SDKs.

Both gateways are built lazily from settings so the project boots (and the
test suite runs) without provider credentials; a missing credential only
fails the request that needs it.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import mercadopago
import stripe
from django.conf import settings
from mercadopago.config import RequestOptions

from apps.core.exceptions import PaymentProviderError

logger = logging.getLogger(__name__)


class MercadoPagoGateway:
    provider = 'mercado_pago'

    def __init__(self, sdk):
        self.sdk = sdk

    @classmethod
    def from_settings(cls) -> 'MercadoPagoGateway':
        token = settings.MERCADOPAGO_ACCESS_TOKEN
        if not token:
            raise PaymentProviderError('Mercado Pago não configurado', provider=cls.provider)
        return cls(mercadopago.SDK(token))

    def _unwrap(self, result: Dict[str, Any], action: str) -> Dict[str, Any]:
        status = result.get('status')
        response = result.get('response') or {}
        if status not in (200, 201):
            logger.error(f"Mercado Pago {action} falhou ({status}): {response}")
            message = response.get('message') if isinstance(response, dict) else None
            raise PaymentProviderError(
                message or f'Erro no Mercado Pago ao {action}',
                provider=self.provider
            )
        return response

    def create_pix_payment(
        self,
        amount: Decimal,
        description: str,
        email: str,
        idempotency_key: str,
        external_reference: Optional[str] = None
    ) -> Dict[str, Any]:
        payment_data = {
            'transaction_amount': float(amount),
            'description': description,
            'payment_method_id': 'pix',
            'payer': {'email': email},
        }
        if external_reference:
            payment_data['external_reference'] = external_reference

        options = RequestOptions(custom_headers={'x-idempotency-key': idempotency_key})
        payment = self._unwrap(
            self.sdk.payment().create(payment_data, options),
            'criar pagamento Pix'
        )
        if payment.get('status') != 'pending':
            logger.error(f"Pagamento Pix criado com status inesperado: {payment.get('status')}")
            raise PaymentProviderError('Erro ao criar pagamento Pix', provider=self.provider)

        logger.info(f"Pagamento Pix criado: {payment.get('id')} (R$ {amount})")
        return payment

    def get_payment(self, payment_id) -> Dict[str, Any]:
        return self._unwrap(self.sdk.payment().get(payment_id), 'consultar pagamento')


def pix_qr_data(payment: Dict[str, Any]) -> Dict[str, Any]:
    transaction_data = (payment.get('point_of_interaction') or {}).get('transaction_data') or {}
    return {
        'qr_code': transaction_data.get('qr_code'),
        'qr_code_base64': transaction_data.get('qr_code_base64'),
        'payment_id': str(payment.get('id')),
    }


class StripeGateway:
    provider = 'stripe'

    def __init__(self, api_key: str):
        self.api_key = api_key

    @classmethod
    def from_settings(cls) -> 'StripeGateway':
        if not settings.STRIPE_SECRET_KEY:
            raise PaymentProviderError('Stripe não configurado', provider=cls.provider)
        return cls(settings.STRIPE_SECRET_KEY)

    def _call(self, action: str, func, *args, **kwargs):
        try:
            return func(*args, api_key=self.api_key, **kwargs)
        except stripe.StripeError as e:
            logger.error(f"Stripe {action} falhou: {e}")
            raise PaymentProviderError(
                getattr(e, 'user_message', None) or f'Erro no Stripe ao {action}',
                provider=self.provider
            )

    def create_payment_intent(
        self,
        amount_cents: int,
        currency: str,
        metadata: Dict[str, str],
        idempotency_key: Optional[str] = None
    ):
        kwargs = {
            'amount': amount_cents,
            'currency': currency,
            'metadata': metadata,
            'automatic_payment_methods': {'enabled': True},
        }
        if idempotency_key:
            kwargs['idempotency_key'] = idempotency_key
        return self._call('criar PaymentIntent', stripe.PaymentIntent.create, **kwargs)

    def retrieve_intent(self, intent_id: str):
        return self._call('consultar PaymentIntent', stripe.PaymentIntent.retrieve, intent_id)

    def cancel_intent(self, intent_id: str):
        return self._call('cancelar PaymentIntent', stripe.PaymentIntent.cancel, intent_id)

    @staticmethod
    def construct_event(payload: bytes, signature: str, secret: str):
        """Raises ValueError or stripe.SignatureVerificationError on bad input."""
        return stripe.Webhook.construct_event(payload, signature, secret)


_mercadopago = None
_stripe = None


def get_mercadopago() -> MercadoPagoGateway:
    global _mercadopago
    if _mercadopago is None:
        _mercadopago = MercadoPagoGateway.from_settings()
    return _mercadopago


def get_stripe() -> StripeGateway:
    global _stripe
    if _stripe is None:
        _stripe = StripeGateway.from_settings()
    return _stripe


def reset_gateways():
    global _mercadopago, _stripe
    _mercadopago = None
    _stripe = None
