from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


class StoreUserManager(UserManager):
    def get_by_natural_key(self, username):
        return self.get(**{f'{self.model.USERNAME_FIELD}__iexact': username})


class User(AbstractUser):
    """
    Store user. Customers log in with their e-mail; `username` mirrors it.
    """
    ROLE_ADMIN = 'admin'
    ROLE_MEMBER = 'member'
    ROLE_CUSTOMER = 'customer'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Administrador'),
        (ROLE_MEMBER, 'Membro'),
        (ROLE_CUSTOMER, 'Cliente'),
    ]

    email = models.EmailField(
        unique=True,
        verbose_name='E-mail'
    )
    name = models.CharField(
        max_length=255,
        blank=True,
        verbose_name='Nome'
    )
    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default=ROLE_CUSTOMER,
        verbose_name='Papel'
    )

    objects = StoreUserManager()

    class Meta:
        ordering = ['-date_joined']
        verbose_name = 'Usuário'
        verbose_name_plural = 'Usuários'

    def __str__(self):
        return self.email or self.username

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.strip().lower()
        if not self.username:
            self.username = self.email
        super().save(*args, **kwargs)

    @property
    def is_admin(self):
        return self.is_superuser or self.role == self.ROLE_ADMIN

    @property
    def display_name(self):
        return self.name or self.get_full_name() or self.email
