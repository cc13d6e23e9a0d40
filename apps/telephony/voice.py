"""
TwiML for the voice webhooks.

These builders always return a valid document; Twilio drops the call on
anything else.
"""
import logging
import re
from urllib.parse import urlencode

from twilio.twiml.voice_response import VoiceResponse, Dial

from apps.core import media_storage
from . import billing_service, services
from .billing_service import InsufficientBalanceError
from .models import CallDirection, WhisperType
from .twilio_client import webhook_url, STATUS_CALLBACK_EVENTS

logger = logging.getLogger(__name__)

WHISPER_MAX_LENGTH = 100
MIN_RING_TIMEOUT = 15


def _dial(**extra) -> Dial:
    return Dial(
        record='record-from-answer-dual',
        recording_status_callback=webhook_url('recording-callback'),
        recording_status_callback_event='completed',
        **extra,
    )


def _number_callbacks() -> dict:
    return {
        'status_callback': webhook_url('status-callback'),
        'status_callback_event': ' '.join(STATUS_CALLBACK_EVENTS),
        'status_callback_method': 'POST',
    }


def _greeting(response: VoiceResponse) -> VoiceResponse:
    response.say('Hello! Thank you for calling.')
    response.pause(length=1)
    response.say('This is a Twilio phone system. Goodbye!')
    return response


def is_outbound(to: str, direction: str, caller: str) -> bool:
    """
    Browser SDK calls arrive with a PSTN `To`. Twilio sometimes labels them
    inbound, so a `client:` caller also counts as outbound.
    """
    return to.startswith('+') and (direction != 'inbound' or caller.startswith('client:'))


def outbound_twiml(call_sid: str, from_number: str, to: str) -> VoiceResponse:
    response = VoiceResponse()
    number = services.find_by_phone_number(from_number)
    if number is not None:
        try:
            billing_service.assert_can_call(number.user)
        except InsufficientBalanceError:
            logger.info(f"Blocked outbound call from {from_number}: insufficient balance")
            response.say('Insufficient balance. Please add funds to your account.')
            response.hangup()
            return response
        if call_sid:
            services.record_call(call_sid, number, from_number, to, CallDirection.OUTBOUND)

    dial = _dial(caller_id=from_number)
    dial.number(to, **_number_callbacks())
    response.append(dial)
    return response


def inbound_twiml(call_sid: str, called: str, caller: str) -> VoiceResponse:
    """Forward to the owner's phone with a whisper, or play the greeting."""
    response = VoiceResponse()
    number = services.find_by_phone_number(called)
    forwarding = services.active_forwarding(number) if number is not None else None
    if forwarding is None:
        return _greeting(response)

    if call_sid:
        services.record_call(call_sid, number, caller, called, CallDirection.INBOUND)

    whisper = webhook_url('whisper') + '?' + urlencode({'pn': called, 'from': caller})
    dial = _dial(
        caller_id=caller,
        answer_on_bridge=True,
        timeout=max(MIN_RING_TIMEOUT, forwarding.ring_timeout or 20),
    )
    dial.number(forwarding.forward_to_number, url=whisper, method='GET', **_number_callbacks())
    response.append(dial)
    return response


def call_twiml(params: dict) -> VoiceResponse:
    to = (params.get('To') or '').strip()
    from_number = (params.get('From') or '').strip()
    direction = (params.get('Direction') or '').lower()
    if not direction and from_number.startswith('+') and to.startswith('+'):
        direction = 'inbound'
    called = (params.get('Called') or to).strip()
    caller = (params.get('Caller') or from_number).strip()
    call_sid = (params.get('CallSid') or '').strip()

    if to and is_outbound(to, direction, caller):
        return outbound_twiml(call_sid, from_number, to)
    if direction == 'inbound':
        if not called:
            return _greeting(VoiceResponse())
        return inbound_twiml(call_sid, called, caller)

    response = VoiceResponse()
    response.say('Hello! This is your Twilio phone system.')
    response.pause(length=1)
    response.say('Thank you for calling. Goodbye!')
    return response


def error_twiml() -> VoiceResponse:
    response = VoiceResponse()
    response.say("I'm sorry, there was an error processing your call. Please try again.")
    response.hangup()
    return response


def readable_caller(caller: str) -> str:
    digits = re.sub(r'\D', '', caller or '')
    return ' '.join(digits) if digits else 'unknown caller'


def whisper_twiml(pn: str, caller: str) -> VoiceResponse:
    """Private message for whoever answers a forwarded call."""
    response = VoiceResponse()
    label = pn or 'your line'
    spoken_caller = readable_caller(caller)
    number = services.find_by_phone_number(pn)

    if number is not None and number.whisper_enabled and number.whisper_type == WhisperType.PLAY \
            and number.whisper_media_url:
        # stored objects are private; Twilio fetches through a short-lived signed URL
        if number.whisper_media_key:
            response.play(media_storage.signed_url(number.whisper_media_key))
        else:
            response.play(number.whisper_media_url)
    elif number is not None and number.whisper_enabled and number.whisper_text:
        text = number.whisper_text.replace('{label}', label).replace('{caller}', spoken_caller)
        if len(text) > WHISPER_MAX_LENGTH:
            text = text[:WHISPER_MAX_LENGTH - 3] + '...'
        response.say(text, voice=number.whisper_voice or 'alice', language=number.whisper_language or 'en-US')
    else:
        response.say(f"Incoming call on {label}. Caller {spoken_caller}.", voice='alice', language='en-US')

    response.pause(length=1)
    return response
