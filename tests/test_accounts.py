"""
Testes de contas: cadastro, login, sessão e promoção de papéis.
"""

import pytest

from apps.accounts.models import User
from apps.accounts.services import AccountService
from apps.core.exceptions import NotFoundError, ValidationError

pytestmark = pytest.mark.django_db


# =============================================================================
# Serviço
# =============================================================================

class TestAccountService:

    def test_register_normalizes_email(self):
        user = AccountService.register('Ana', '  Ana@Example.COM ', 'senha-forte-123')

        assert user.email == 'ana@example.com'
        assert user.username == 'ana@example.com'
        assert user.role == User.ROLE_CUSTOMER
        assert user.check_password('senha-forte-123')

    def test_register_rejects_duplicate_email(self, customer):
        with pytest.raises(ValidationError) as exc_info:
            AccountService.register('Outra', 'MARIA@example.com', 'senha-forte-123')
        assert exc_info.value.field == 'email'

    def test_register_rejects_weak_password(self):
        with pytest.raises(ValidationError) as exc_info:
            AccountService.register('Ana', 'ana@example.com', '12345678')
        assert exc_info.value.field == 'password'

    def test_promote_by_email(self, customer):
        user = AccountService.promote(role=User.ROLE_ADMIN, email='maria@example.com')

        assert user.pk == customer.pk
        assert user.is_admin

    def test_promote_invalid_role(self, customer):
        with pytest.raises(ValidationError):
            AccountService.promote(role='dono', user_id=customer.pk)

    def test_promote_unknown_user(self):
        with pytest.raises(NotFoundError):
            AccountService.promote(role=User.ROLE_ADMIN, email='ninguem@example.com')


# =============================================================================
# API
# =============================================================================

class TestAuthApi:

    def test_register_endpoint(self, api_client):
        response = api_client.post('/api/auth/register/', {
            'name': 'Ana',
            'email': 'ana@example.com',
            'password': 'senha-forte-123',
        }, format='json')

        assert response.status_code == 201
        assert response.data['email'] == 'ana@example.com'
        assert response.data['is_admin'] is False

    def test_register_duplicate_returns_400(self, api_client, customer):
        response = api_client.post('/api/auth/register/', {
            'email': 'maria@example.com',
            'password': 'senha-forte-123',
        }, format='json')

        assert response.status_code == 400
        assert response.data['field'] == 'email'

    def test_login_and_me(self, api_client, customer):
        response = api_client.post('/api/auth/login/', {
            'email': 'MARIA@example.com',
            'password': 'senha-forte-123',
        }, format='json')
        assert response.status_code == 200

        me = api_client.get('/api/auth/me/')
        assert me.status_code == 200
        assert me.data['email'] == 'maria@example.com'

    def test_login_wrong_password(self, api_client, customer):
        response = api_client.post('/api/auth/login/', {
            'email': 'maria@example.com',
            'password': 'errada-123',
        }, format='json')

        assert response.status_code == 401
        assert response.data['error'] == 'INVALID_CREDENTIALS'

    def test_login_is_rate_limited(self, api_client, customer, settings):
        settings.RATE_LIMITS = {**settings.RATE_LIMITS, 'login': (2, 60)}
        payload = {'email': 'maria@example.com', 'password': 'errada-123'}

        statuses = [
            api_client.post('/api/auth/login/', payload, format='json').status_code
            for _ in range(3)
        ]

        assert statuses == [401, 401, 429]

    def test_me_requires_authentication(self, api_client):
        response = api_client.get('/api/auth/me/')

        assert response.status_code in (401, 403)


class TestAdminUsersApi:

    def test_customer_cannot_list_users(self, customer_client):
        response = customer_client.get('/api/admin/users/')

        assert response.status_code == 403

    def test_admin_lists_and_filters(self, admin_client, customer):
        response = admin_client.get('/api/admin/users/', {'role': 'customer'})

        assert response.status_code == 200
        assert [u['email'] for u in response.data['users']] == ['maria@example.com']

    def test_admin_promotes_user(self, admin_client, customer):
        response = admin_client.post('/api/admin/users/promote/', {
            'user_id': customer.pk,
            'role': 'admin',
        }, format='json')

        assert response.status_code == 200
        customer.refresh_from_db()
        assert customer.role == User.ROLE_ADMIN

    def test_promote_requires_target(self, admin_client):
        response = admin_client.post('/api/admin/users/promote/', {'role': 'admin'}, format='json')

        assert response.status_code == 400
