from django.urls import path

from . import views

urlpatterns = [
    # Pix (Mercado Pago)
    path('payments/pix/', views.pix_checkout, name='pix_checkout'),
    path('payments/pix/regenerate/', views.pix_regenerate, name='pix_regenerate'),
    path('payments/mercadopago/webhook/', views.mercadopago_webhook, name='mercadopago_webhook'),
    path('payments/mercadopago/check-payment/', views.mercadopago_check_payment, name='mercadopago_check_payment'),

    # Stripe
    path(
        'payments/stripe/create-payment-intent/',
        views.stripe_create_payment_intent,
        name='stripe_create_payment_intent'
    ),
    path('payments/stripe/payment-status/', views.stripe_payment_status, name='stripe_payment_status'),
    path('payments/stripe/resume-payment/', views.stripe_resume_payment, name='stripe_resume_payment'),
    path('payments/stripe/webhook/', views.stripe_webhook, name='stripe_webhook'),
]
