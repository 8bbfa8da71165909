from django.urls import path
from . import views

app_name = 'billing'

urlpatterns = [
    path('webhooks/asaas/', views.asaas_webhook, name='asaas_webhook'),
    path('catalog/', views.catalog_view, name='catalog'),
    path('checkout/', views.checkout_view, name='checkout'),
    path('credits/history/', views.credit_history_view, name='credit_history'),
    path('commissions/', views.commission_list_view, name='commission_list'),
    path('commissions/top-affiliates/', views.top_affiliates_view, name='top_affiliates'),
]
