"""
Admin notifications via the Telegram Bot API.

Notifications are best-effort: a missing configuration or a failed request is
logged and reported through the return value, never raised.
"""
import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = 'https://api.telegram.org/bot{token}/sendMessage'


def send_telegram_message(text: str) -> bool:
    token = settings.TELEGRAM_BOT_TOKEN
    chat_id = settings.TELEGRAM_CHAT_ID

    if not token or not chat_id:
        logger.warning("Telegram is not configured; skipping notification")
        return False

    try:
        response = requests.post(
            TELEGRAM_API_URL.format(token=token),
            json={
                'chat_id': chat_id,
                'text': text,
                'parse_mode': 'HTML',
            },
            timeout=15,
        )
    except requests.exceptions.RequestException as e:
        logger.error(f"Telegram request failed: {e}")
        return False

    if response.status_code != 200:
        logger.error(f"Telegram API returned {response.status_code}: {response.text}")
        return False

    logger.info("Telegram notification sent")
    return True
