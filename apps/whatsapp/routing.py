from django.urls import path

from . import consumers

websocket_urlpatterns = [
    path('ws/chat/<int:lead_id>/', consumers.LeadChatConsumer.as_asgi()),
]
