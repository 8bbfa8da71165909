from django.urls import path
from . import views

app_name = 'whatsapp'

urlpatterns = [
    path('webhook/<str:verify_token>/', views.webhook, name='webhook'),
    path('send-message/', views.send_message_api, name='send_message'),
    path('messages/<int:lead_id>/', views.get_messages_api, name='get_messages'),
    path('bulk-send/', views.bulk_send_api, name='bulk_send'),
]
