"""
Testes de pagamentos: gateways, checkout Pix, webhook do Mercado Pago
(assinatura e deduplicação) e fluxo do Stripe.

Os SDKs nunca são chamados de verdade: os gateways são substituídos por
mocks via `patch('apps.payments.services.get_mercadopago')` e afins.
"""

import hashlib
import hmac
import json
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import stripe
from django.db import DatabaseError

from apps.core.exceptions import BusinessRuleError, PaymentProviderError, RateLimitedError
from apps.orders.models import Order, OrderStatus, PaymentProvider
from apps.payments import services
from apps.payments.gateways import MercadoPagoGateway, StripeGateway, get_stripe, pix_qr_data

pytestmark = pytest.mark.django_db

WEBHOOK_SECRET = 'segredo-mp'


def mp_payment(payment_id=1001, status='pending', external_reference=None):
    return {
        'id': payment_id,
        'status': status,
        'external_reference': external_reference,
        'point_of_interaction': {
            'transaction_data': {'qr_code': '000201pix', 'qr_code_base64': 'iVBORw0KGgo='},
        },
    }


def mp_signature(payment_id, request_id='req-1', ts='1700000000', secret=WEBHOOK_SECRET):
    manifest = f'id:{payment_id};request-id:{request_id};ts:{ts};'
    digest = hmac.new(secret.encode(), manifest.encode(), hashlib.sha256).hexdigest()
    return f'ts={ts},v1={digest}'


@pytest.fixture
def mercadopago():
    with patch('apps.payments.services.get_mercadopago') as get_mp:
        yield get_mp.return_value


@pytest.fixture
def stripe_gateway():
    with patch('apps.payments.services.get_stripe') as get_gateway:
        yield get_gateway.return_value


# =============================================================================
# Gateways
# =============================================================================

class TestMercadoPagoGateway:

    def test_create_pix_payment_sends_idempotency_key(self):
        sdk = MagicMock()
        sdk.payment.return_value.create.return_value = {'status': 201, 'response': mp_payment()}

        payment = MercadoPagoGateway(sdk).create_pix_payment(
            Decimal('29.90'), 'Compra', 'maria@example.com', 'chave-1', external_reference='ref'
        )

        data, options = sdk.payment.return_value.create.call_args.args
        assert data['transaction_amount'] == 29.9
        assert data['payment_method_id'] == 'pix'
        assert data['external_reference'] == 'ref'
        assert options.custom_headers == {'x-idempotency-key': 'chave-1'}
        assert payment['id'] == 1001

    def test_http_error_raises(self):
        sdk = MagicMock()
        sdk.payment.return_value.get.return_value = {'status': 404, 'response': {'message': 'not found'}}

        with pytest.raises(PaymentProviderError) as exc_info:
            MercadoPagoGateway(sdk).get_payment('1')
        assert exc_info.value.message == 'not found'

    def test_unexpected_pix_status_raises(self):
        sdk = MagicMock()
        sdk.payment.return_value.create.return_value = {'status': 201, 'response': mp_payment(status='rejected')}

        with pytest.raises(PaymentProviderError):
            MercadoPagoGateway(sdk).create_pix_payment(Decimal('1'), 'x', 'a@b.com', 'k')

    def test_missing_token(self, settings):
        settings.MERCADOPAGO_ACCESS_TOKEN = ''

        with pytest.raises(PaymentProviderError):
            MercadoPagoGateway.from_settings()

    def test_qr_data(self):
        assert pix_qr_data(mp_payment()) == {
            'qr_code': '000201pix', 'qr_code_base64': 'iVBORw0KGgo=', 'payment_id': '1001',
        }


class TestStripeGateway:

    def test_stripe_errors_become_provider_errors(self):
        gateway = StripeGateway('sk_test')

        with patch('stripe.PaymentIntent.retrieve', side_effect=stripe.StripeError('falhou')):
            with pytest.raises(PaymentProviderError):
                gateway.retrieve_intent('pi_1')

    def test_create_uses_idempotency_key(self):
        gateway = StripeGateway('sk_test')

        with patch('stripe.PaymentIntent.create') as create:
            gateway.create_payment_intent(2990, 'brl', {'order_id': 'x'}, idempotency_key='x')

        kwargs = create.call_args.kwargs
        assert kwargs['api_key'] == 'sk_test'
        assert kwargs['idempotency_key'] == 'x'
        assert kwargs['amount'] == 2990

    def test_singleton_from_settings(self, settings):
        settings.STRIPE_SECRET_KEY = 'sk_test'

        assert get_stripe() is get_stripe()


# =============================================================================
# Pix
# =============================================================================

class TestPixCheckout:

    def test_creates_pending_order(self, customer_client, customer, product, coupon_factory, mercadopago):
        coupon_factory()
        mercadopago.create_pix_payment.return_value = mp_payment()

        response = customer_client.post('/api/payments/pix/', {
            'items': [{'product_id': product.id, 'quantity': 1}],
            'coupon_code': 'PROMO10',
        }, format='json')

        assert response.status_code == 201
        assert response.data['qr_code'] == '000201pix'
        order = Order.objects.get(pk=response.data['order_id'])
        assert order.status == OrderStatus.PENDING
        assert order.payment_id == '1001'
        assert order.total == Decimal('26.91')
        kwargs = mercadopago.create_pix_payment.call_args.kwargs
        assert kwargs['amount'] == Decimal('26.91')
        assert kwargs['external_reference'] == str(order.id)

    def test_requires_authentication(self, api_client, product):
        response = api_client.post('/api/payments/pix/', {
            'items': [{'product_id': product.id}],
        }, format='json')

        assert response.status_code in (401, 403)

    def test_provider_failure_creates_no_order(self, customer_client, product, mercadopago):
        mercadopago.create_pix_payment.side_effect = PaymentProviderError('fora do ar')

        response = customer_client.post('/api/payments/pix/', {
            'items': [{'product_id': product.id}],
        }, format='json')

        assert response.status_code == 502
        assert not Order.objects.exists()

    def test_rate_limited_per_user(self, customer, product, mercadopago, settings):
        settings.RATE_LIMITS = {**settings.RATE_LIMITS, 'pix': (1, 3600)}
        mercadopago.create_pix_payment.side_effect = [mp_payment(1), mp_payment(2)]
        items = [{'product_id': product.id}]

        services.create_pix_checkout(customer, items, 'Compra')
        with pytest.raises(RateLimitedError):
            services.create_pix_checkout(customer, items, 'Compra')

    def test_regenerate_replaces_payment_id(self, customer, order_factory, mercadopago):
        order = order_factory(user=customer, payment_id='1001')
        mercadopago.create_pix_payment.return_value = mp_payment(2002)

        result = services.regenerate_pix(order, customer)

        order.refresh_from_db()
        assert order.payment_id == '2002'
        assert result['payment_id'] == '2002'

    def test_regenerate_requires_pending(self, customer, order_factory, mercadopago):
        order = order_factory(user=customer, status=OrderStatus.COMPLETED)

        with pytest.raises(BusinessRuleError):
            services.regenerate_pix(order, customer)
        mercadopago.create_pix_payment.assert_not_called()


class TestExtractPaymentId:

    @pytest.mark.parametrize('body, query, expected', [
        ({}, {'data.id': '77'}, '77'),
        ({}, {'id': '78'}, '78'),
        ({'data': {'id': 79}}, {}, '79'),
        ({'id': 80}, {}, '80'),
        ({'resource': 'https://api.mercadopago.com/v1/payments/81'}, {}, '81'),
        ({'resource': '82'}, {}, '82'),
        ({'topic': 'merchant_order'}, {}, None),
    ])
    def test_sources(self, body, query, expected):
        assert services.extract_payment_id(body, query) == expected


class TestMercadoPagoWebhook:

    url = '/api/payments/mercadopago/webhook/'

    def post(self, client, payment_id, signature=None, request_id='req-1'):
        headers = {'HTTP_X_REQUEST_ID': request_id}
        if signature is not None:
            headers['HTTP_X_SIGNATURE'] = signature
        return client.post(
            f'{self.url}?data.id={payment_id}',
            {'type': 'payment', 'data': {'id': str(payment_id)}},
            format='json',
            **headers
        )

    def test_approved_payment_completes_order(self, api_client, customer, product, order_factory,
                                               mercadopago, settings, mailoutbox):
        settings.MERCADOPAGO_WEBHOOK_SECRET = WEBHOOK_SECRET
        order = order_factory(user=customer, payment_id='1001', items=((product, None, 1),))
        mercadopago.get_payment.return_value = mp_payment(status='approved')

        response = self.post(api_client, 1001, signature=mp_signature('1001'))

        assert response.status_code == 200
        assert response.data['status'] == 'completed'
        order.refresh_from_db()
        assert order.status == OrderStatus.COMPLETED
        assert order.paid_at is not None
        assert len(mailoutbox) == 1

    def test_invalid_signature(self, api_client, order_factory, mercadopago, settings):
        settings.MERCADOPAGO_WEBHOOK_SECRET = WEBHOOK_SECRET
        order_factory(payment_id='1001')

        response = self.post(api_client, 1001, signature=mp_signature('1001', secret='outro'))

        assert response.status_code == 403
        mercadopago.get_payment.assert_not_called()

    def test_missing_signature(self, api_client, mercadopago, settings):
        settings.MERCADOPAGO_WEBHOOK_SECRET = WEBHOOK_SECRET

        response = self.post(api_client, 1001)

        assert response.status_code == 403

    def test_duplicate_notification_is_ignored(self, api_client, order_factory, mercadopago):
        order_factory(payment_id='1001')
        mercadopago.get_payment.return_value = mp_payment(status='approved')

        first = self.post(api_client, 1001)
        second = self.post(api_client, 1001)

        assert first.data['received'] is True
        assert second.data == {'status': 'duplicated'}
        mercadopago.get_payment.assert_called_once_with('1001')

    def test_provider_error_allows_retry(self, api_client, order_factory, mercadopago):
        order_factory(payment_id='1001')
        mercadopago.get_payment.side_effect = [
            PaymentProviderError('timeout'),
            mp_payment(status='approved'),
        ]

        first = self.post(api_client, 1001)
        second = self.post(api_client, 1001)

        assert first.status_code == 400
        assert second.data['status'] == 'completed'

    def test_reconcile_failure_releases_dedup_key(self, order_factory, mercadopago):
        order = order_factory(payment_id='1001')
        mercadopago.get_payment.return_value = mp_payment(status='approved')

        with patch.object(services.OrderService, 'apply_payment_status', side_effect=DatabaseError('lock')):
            with pytest.raises(DatabaseError):
                services.handle_mp_webhook({}, {'data.id': '1001'}, {})
        result = services.handle_mp_webhook({}, {'data.id': '1001'}, {})

        assert result['status'] == OrderStatus.COMPLETED
        order.refresh_from_db()
        assert order.status == OrderStatus.COMPLETED

    def test_without_payment_id(self, api_client, mercadopago):
        response = api_client.post(self.url, {'type': 'test'}, format='json')

        assert response.data == {'received': True, 'message': 'Notificação sem ID de pagamento'}
        mercadopago.get_payment.assert_not_called()

    def test_falls_back_to_external_reference(self, api_client, order_factory, mercadopago):
        order = order_factory(payment_id='antigo')
        mercadopago.get_payment.return_value = mp_payment(
            payment_id=3003, status='approved', external_reference=str(order.id)
        )

        response = self.post(api_client, 3003)

        assert response.data['order_id'] == str(order.id)

    def test_unknown_order(self, api_client, mercadopago):
        mercadopago.get_payment.return_value = mp_payment(payment_id=4004, status='approved')

        response = self.post(api_client, 4004)

        assert response.data['message'] == 'Pedido não encontrado'

    def test_verify_signature_rejects_malformed_header(self):
        assert services.verify_mp_signature('lixo', 'req', '1', WEBHOOK_SECRET) is False
        assert services.verify_mp_signature(mp_signature('1'), '', '1', WEBHOOK_SECRET) is False


class TestCheckPayment:

    def test_reconciles_own_order(self, customer_client, customer, order_factory, mercadopago):
        order_factory(user=customer, payment_id='1001')
        mercadopago.get_payment.return_value = mp_payment(status='rejected')

        response = customer_client.get('/api/payments/mercadopago/check-payment/', {'paymentId': '1001'})

        assert response.data['provider_status'] == 'rejected'
        assert response.data['status'] == 'cancelled'

    def test_other_users_payment(self, customer_client, user_factory, order_factory, mercadopago):
        order_factory(user=user_factory(), payment_id='1001')

        response = customer_client.get('/api/payments/mercadopago/check-payment/', {'paymentId': '1001'})

        assert response.status_code == 403


# =============================================================================
# Stripe
# =============================================================================

class TestStripeCheckout:

    def test_create_payment_intent(self, api_client, product, variation, stripe_gateway):
        stripe_gateway.create_payment_intent.return_value = {'id': 'pi_123', 'client_secret': 'pi_123_secret'}

        response = api_client.post('/api/payments/stripe/create-payment-intent/', {
            'items': [{'product_id': product.id, 'variation_id': variation.id, 'quantity': 2}],
            'email': 'Visitante@Example.com',
        }, format='json')

        assert response.status_code == 201
        assert response.data['client_secret'] == 'pi_123_secret'
        order = Order.objects.get(pk=response.data['order_id'])
        assert order.stripe_payment_intent_id == 'pi_123'
        assert order.email == 'visitante@example.com'

        kwargs = stripe_gateway.create_payment_intent.call_args.kwargs
        assert kwargs['amount_cents'] == 3980
        assert kwargs['idempotency_key'] == str(order.id)
        assert json.loads(kwargs['metadata']['items']) == [
            {'product_id': product.id, 'variation_id': variation.id, 'quantity': 2}
        ]

    def test_guest_without_email(self, api_client, product, stripe_gateway):
        response = api_client.post('/api/payments/stripe/create-payment-intent/', {
            'items': [{'product_id': product.id}],
        }, format='json')

        assert response.status_code == 400
        stripe_gateway.create_payment_intent.assert_not_called()

    def test_payment_status_reconciles(self, api_client, order_factory, stripe_gateway):
        order = order_factory(payment_provider=PaymentProvider.STRIPE, stripe_payment_intent_id='pi_1')
        stripe_gateway.retrieve_intent.return_value = {
            'id': 'pi_1', 'status': 'succeeded', 'amount': 2990, 'currency': 'brl',
        }

        response = api_client.get('/api/payments/stripe/payment-status/', {'payment_intent': 'pi_1'})

        assert response.data['order_id'] == str(order.id)
        assert response.data['order_status'] == 'completed'

    def test_resume_payment(self, order_factory, stripe_gateway):
        order = order_factory(payment_provider=PaymentProvider.STRIPE, stripe_payment_intent_id='pi_1')
        stripe_gateway.retrieve_intent.return_value = {
            'id': 'pi_1', 'status': 'requires_payment_method', 'client_secret': 'sec', 'amount': 2990,
        }

        result = services.resume_payment(order)

        assert result['client_secret'] == 'sec'

    @pytest.mark.parametrize('status, intent_status, rule', [
        (OrderStatus.COMPLETED, None, 'order_already_paid'),
        (OrderStatus.CANCELLED, None, 'order_cancelled'),
        (OrderStatus.PENDING, 'succeeded', 'intent_succeeded'),
        (OrderStatus.PENDING, 'canceled', 'intent_canceled'),
    ])
    def test_resume_payment_rules(self, order_factory, stripe_gateway, status, intent_status, rule):
        order = order_factory(
            payment_provider=PaymentProvider.STRIPE, stripe_payment_intent_id='pi_1', status=status
        )
        stripe_gateway.retrieve_intent.return_value = {'id': 'pi_1', 'status': intent_status}

        with pytest.raises(BusinessRuleError) as exc_info:
            services.resume_payment(order)
        assert exc_info.value.rule == rule


class TestStripeWebhook:

    url = '/api/payments/stripe/webhook/'

    def post(self, client, signature='t=1,v1=abc'):
        headers = {'HTTP_STRIPE_SIGNATURE': signature} if signature else {}
        return client.generic('POST', self.url, b'{"id": "evt_1"}', content_type='application/json', **headers)

    def event(self, event_type, intent):
        return {'id': 'evt_1', 'type': event_type, 'data': {'object': intent}}

    def test_missing_signature(self, api_client, settings):
        settings.STRIPE_WEBHOOK_SECRET = 'whsec'

        assert self.post(api_client, signature=None).status_code == 400

    def test_invalid_signature(self, api_client, stripe_gateway, settings):
        settings.STRIPE_WEBHOOK_SECRET = 'whsec'
        stripe_gateway.construct_event.side_effect = stripe.SignatureVerificationError('bad', 't=1,v1=abc')

        response = self.post(api_client)

        assert response.status_code == 400

    def test_not_configured(self, api_client, settings):
        settings.STRIPE_WEBHOOK_SECRET = ''

        assert self.post(api_client).status_code == 502

    def test_succeeded_completes_existing_order(self, api_client, order_factory, stripe_gateway, settings):
        settings.STRIPE_WEBHOOK_SECRET = 'whsec'
        order = order_factory(payment_provider=PaymentProvider.STRIPE, stripe_payment_intent_id='pi_1')
        stripe_gateway.construct_event.return_value = self.event(
            'payment_intent.succeeded', {'id': 'pi_1', 'status': 'succeeded'}
        )

        response = self.post(api_client)

        assert response.data == {'received': True}
        order.refresh_from_db()
        assert order.status == OrderStatus.COMPLETED
        payload, signature, secret = stripe_gateway.construct_event.call_args.args
        assert payload == b'{"id": "evt_1"}'
        assert (signature, secret) == ('t=1,v1=abc', 'whsec')

    def test_succeeded_creates_missing_order(self, api_client, customer, product, coupon_factory,
                                             stripe_gateway, settings):
        settings.STRIPE_WEBHOOK_SECRET = 'whsec'
        coupon_factory()
        order_id = '2b1d6c1e-2f0a-4c3e-9a56-0f0e6f9a1d11'
        stripe_gateway.construct_event.return_value = self.event('payment_intent.succeeded', {
            'id': 'pi_new',
            'status': 'succeeded',
            'metadata': {
                'order_id': order_id,
                'user_id': str(customer.pk),
                'email': customer.email,
                'coupon_code': 'PROMO10',
                'items': json.dumps([{'product_id': product.id, 'variation_id': None, 'quantity': 1}]),
            },
        })

        self.post(api_client)

        order = Order.objects.get(stripe_payment_intent_id='pi_new')
        assert str(order.id) == order_id
        assert order.status == OrderStatus.COMPLETED
        assert order.total == Decimal('26.91')
        assert order.user == customer

    def test_payment_failed_keeps_order_pending(self, api_client, order_factory, stripe_gateway, settings):
        settings.STRIPE_WEBHOOK_SECRET = 'whsec'
        order = order_factory(payment_provider=PaymentProvider.STRIPE, stripe_payment_intent_id='pi_1')
        stripe_gateway.construct_event.return_value = self.event(
            'payment_intent.payment_failed', {'id': 'pi_1', 'status': 'requires_payment_method'}
        )

        self.post(api_client)

        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING

    def test_canceled_cancels_order(self, api_client, order_factory, stripe_gateway, settings):
        settings.STRIPE_WEBHOOK_SECRET = 'whsec'
        order = order_factory(payment_provider=PaymentProvider.STRIPE, stripe_payment_intent_id='pi_1')
        stripe_gateway.construct_event.return_value = self.event(
            'payment_intent.canceled', {'id': 'pi_1', 'status': 'canceled'}
        )

        self.post(api_client)

        order.refresh_from_db()
        assert order.status == OrderStatus.CANCELLED
