from django.urls import path
from . import views

app_name = 'invoices'

urlpatterns = [
    path('', views.invoice_list_view, name='invoice_list'),
    path('register/', views.invoice_register_view, name='invoice_register'),
    path('<int:pk>/unlock/', views.invoice_unlock_view, name='invoice_unlock'),
]
