import logging
from typing import Optional

from django.contrib.auth import get_user_model, password_validation
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Q

from apps.core.exceptions import ValidationError, NotFoundError

logger = logging.getLogger(__name__)


class AccountService:

    @staticmethod
    def register(name: str, email: str, password: str):
        User = get_user_model()
        email = (email or '').strip().lower()
        if not email or '@' not in email:
            raise ValidationError('E-mail inválido', field='email')
        if User.objects.filter(email__iexact=email).exists():
            raise ValidationError('E-mail já cadastrado', field='email')

        candidate = User(email=email, username=email, name=(name or '').strip())
        try:
            password_validation.validate_password(password, user=candidate)
        except DjangoValidationError as e:
            raise ValidationError(' '.join(e.messages), field='password')

        candidate.set_password(password)
        candidate.save()
        logger.info(f"Usuário registrado: {email}")
        return candidate

    @staticmethod
    def list_users(search: Optional[str] = None, role: Optional[str] = None):
        User = get_user_model()
        queryset = User.objects.all()
        if search:
            queryset = queryset.filter(
                Q(email__icontains=search) | Q(name__icontains=search)
            )
        if role:
            queryset = queryset.filter(role=role)
        return queryset.order_by('-date_joined')

    @staticmethod
    def promote(role: str, user_id=None, email: Optional[str] = None):
        User = get_user_model()
        valid_roles = [choice for choice, _ in User.ROLE_CHOICES]
        if role not in valid_roles:
            raise ValidationError(f'Papel inválido: {role}', field='role')

        lookup = {'pk': user_id} if user_id else {'email__iexact': (email or '').strip()}
        try:
            user = User.objects.get(**lookup)
        except (User.DoesNotExist, ValueError):
            raise NotFoundError('Usuário não encontrado', entity_type='user', entity_id=user_id or email)

        old_role = user.role
        user.role = role
        user.save(update_fields=['role'])
        logger.info(f"Papel do usuário {user.email}: {old_role} -> {role}")
        return user
