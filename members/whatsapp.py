from django.conf import settings
from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException
import logging
import re

logger = logging.getLogger(__name__)


def format_phone_number(phone, country_code=None):
    """Normalise a local or international number to E.164 for WhatsApp."""
    if not phone:
        return None
    country_code = country_code or settings.WHATSAPP_DEFAULT_COUNTRY_CODE
    if phone.strip().startswith('+'):
        return '+' + re.sub(r'\D', '', phone)
    phone = re.sub(r'\D', '', phone)
    if phone.startswith(country_code) and len(phone) > 10:
        return f"+{phone}"
    if phone.startswith('0'):
        phone = phone[1:]
    return f"+{country_code}{phone}"


def send_whatsapp_message(to, message, media_url=None):
    """Send WhatsApp message using Twilio API with optional media attachment"""
    try:
        formatted_phone = format_phone_number(to)
        logger.info(f"[WhatsApp] Sending message to: whatsapp:{formatted_phone}")
        logger.info(f"[WhatsApp] Message preview: {message[:60]}...")

        client = Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)

        message_params = {
            'from_': settings.TWILIO_WHATSAPP_NUMBER,
            'body': message,
            'to': f'whatsapp:{formatted_phone}'
        }
        if media_url:
            logger.info(f"[WhatsApp] Attaching media: {media_url}")
            message_params['media_url'] = [media_url]

        msg = client.messages.create(**message_params)
        logger.info(f"[WhatsApp] Message sent successfully. SID: {msg.sid}")
        return msg.sid

    except TwilioRestException as e:
        logger.error(f"[WhatsApp] Twilio error: {e}")
        raise
