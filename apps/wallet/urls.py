from django.urls import path
from . import views

app_name = 'wallet'

urlpatterns = [
    path('withdrawals/', views.withdrawal_request_view, name='withdrawal_request'),
    path('withdrawals/history/', views.withdrawal_history_view, name='withdrawal_history'),
    path('admin/withdrawals/', views.admin_withdrawal_list_view, name='admin_withdrawal_list'),
    path('admin/withdrawals/<int:pk>/status/', views.admin_withdrawal_status_view, name='admin_withdrawal_status'),
    path('admin/withdrawals/process-old/', views.admin_process_old_view, name='admin_process_old'),
]
