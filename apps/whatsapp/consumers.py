import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from apps.leads.models import Lead
from .realtime import lead_group_name

logger = logging.getLogger(__name__)


class LeadChatConsumer(AsyncJsonWebsocketConsumer):
    """
    Live conversation of one lead

    Only authenticated users of the lead's company may join; sellers only
    for the leads assigned to them.
    """

    async def connect(self):
        self.lead_id = self.scope['url_route']['kwargs']['lead_id']
        self.group_name = lead_group_name(self.lead_id)
        user = self.scope.get('user')

        if user is None or not user.is_authenticated or not await self.can_access(user):
            logger.warning(f"WebSocket rejected for lead {self.lead_id}")
            await self.close(code=4403)
            return

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def chat_message(self, event):
        await self.send_json({'type': 'message', 'message': event['message']})

    @database_sync_to_async
    def can_access(self, user):
        leads = Lead.objects.filter(pk=self.lead_id, company_id=user.company_id)
        if not user.is_admin():
            leads = leads.filter(assigned_to=user)
        return leads.exists()
