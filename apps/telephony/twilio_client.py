"""
Thin wrapper around the Twilio REST client and voice token helpers.
"""
import logging
from typing import List, Optional

from django.conf import settings
from twilio.base.exceptions import TwilioException
from twilio.jwt.access_token import AccessToken
from twilio.jwt.access_token.grants import VoiceGrant
from twilio.rest import Client

logger = logging.getLogger(__name__)

STATUS_CALLBACK_EVENTS = ['initiated', 'ringing', 'answered', 'completed']

_client = None


class TwilioServiceError(Exception):
    """Twilio rejected a request or is not configured."""


def get_client() -> Client:
    global _client
    if _client is None:
        if not settings.TWILIO_ACCOUNT_SID or not settings.TWILIO_AUTH_TOKEN:
            raise TwilioServiceError("Twilio credentials are not configured")
        _client = Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
    return _client


def webhook_url(path: str) -> str:
    return f"{settings.SERVER_URL}/api/twilio/{path}"


def search_available_numbers(country: str = 'US', area_code: Optional[str] = None, limit: int = 20) -> List:
    params = {'limit': limit}
    if area_code:
        params['area_code'] = area_code
    try:
        return get_client().available_phone_numbers(country).local.list(**params)
    except TwilioException as e:
        raise TwilioServiceError(str(e))


def purchase_number(phone_number: str):
    """Buy `phone_number` and point its voice webhooks at this server."""
    try:
        return get_client().incoming_phone_numbers.create(
            phone_number=phone_number,
            voice_application_sid=settings.TWILIO_APP_SID or None,
            voice_url=webhook_url('twiml'),
            status_callback=webhook_url('status-callback'),
            status_callback_method='POST',
        )
    except TwilioException as e:
        raise TwilioServiceError(str(e))


def release_number(twilio_sid: str) -> None:
    try:
        get_client().incoming_phone_numbers(twilio_sid).delete()
    except TwilioException as e:
        raise TwilioServiceError(str(e))


def update_number(twilio_sid: str, **params) -> None:
    try:
        get_client().incoming_phone_numbers(twilio_sid).update(**params)
    except TwilioException as e:
        raise TwilioServiceError(str(e))


def voice_access_token(identity: str) -> str:
    """JWT letting the browser SDK place calls through the TwiML app."""
    if not (settings.TWILIO_ACCOUNT_SID and settings.TWILIO_API_KEY and settings.TWILIO_API_SECRET):
        raise TwilioServiceError("Missing Twilio credentials")

    token = AccessToken(
        settings.TWILIO_ACCOUNT_SID,
        settings.TWILIO_API_KEY,
        settings.TWILIO_API_SECRET,
        identity=identity,
    )
    token.add_grant(VoiceGrant(
        outgoing_application_sid=settings.TWILIO_APP_SID,
        incoming_allow=True,
    ))
    jwt = token.to_jwt()
    return jwt.decode() if isinstance(jwt, bytes) else jwt
