from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Coupon',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=50, unique=True, verbose_name='Código')),
                ('type', models.CharField(choices=[('percent', 'Percentual'), ('fixed', 'Valor fixo')], default='percent', max_length=10, verbose_name='Tipo')),
                ('value', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))], verbose_name='Valor')),
                ('min_subtotal', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, verbose_name='Subtotal mínimo')),
                ('max_uses', models.PositiveIntegerField(blank=True, null=True, verbose_name='Usos máximos')),
                ('max_uses_per_user', models.PositiveIntegerField(default=1, verbose_name='Usos por cliente')),
                ('used_count', models.PositiveIntegerField(default=0, verbose_name='Vezes usado')),
                ('applies_to', models.CharField(choices=[('all', 'Todos os produtos'), ('products', 'Produtos específicos'), ('variations', 'Variações específicas')], default='all', max_length=20, verbose_name='Aplica-se a')),
                ('stackable', models.BooleanField(default=False, verbose_name='Cumulativo')),
                ('is_active', models.BooleanField(default=True, verbose_name='Ativo')),
                ('starts_at', models.DateTimeField(blank=True, null=True, verbose_name='Início')),
                ('ends_at', models.DateTimeField(blank=True, null=True, verbose_name='Fim')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Criado por')),
                ('products', models.ManyToManyField(blank=True, related_name='coupons', to='catalog.product', verbose_name='Produtos')),
                ('variations', models.ManyToManyField(blank=True, related_name='coupons', to='catalog.productvariation', verbose_name='Variações')),
            ],
            options={
                'verbose_name': 'Cupom',
                'verbose_name_plural': 'Cupons',
                'ordering': ['-created_at'],
            },
        ),
    ]
