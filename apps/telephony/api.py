"""
Telephony endpoints: numbers, browser calling, Twilio webhooks, call logs,
call forwarding and the calling wallet.

The webhook endpoints (twiml, whisper, status-callback, recording-callback)
are called by Twilio and carry no session.
"""
import logging
from typing import Optional

from django.http import HttpRequest, HttpResponse
from ninja import Router, File
from ninja.errors import HttpError
from ninja.files import UploadedFile

from apps.core.media_storage import StorageError
from apps.identity.decorators import require_auth, require_permission
from apps.identity.permissions import Permissions
from . import billing_service, services, twilio_client, voice
from .audio import TranscodingError
from .billing_service import InsufficientBalanceError
from .dtos import (
    PhoneNumberOut, CallForwardingOut, PhoneCallOut,
    BuyNumberIn, AccessTokenIn, PhoneNumberUpdate, WhisperUpdate,
    CallForwardingIn, CallForwardingUpdate, ToggleIn,
)
from .models import PhoneNumber
from .services import NumberUnavailableError
from .twilio_client import TwilioServiceError

logger = logging.getLogger(__name__)

router = Router(tags=["Telephony"])
forwarding_router = Router(tags=["Call Forwarding"])
billing_router = Router(tags=["Billing"])


def _number(obj) -> dict:
    return PhoneNumberOut.from_orm(obj).dict()


def _forwarding(obj) -> dict:
    data = CallForwardingOut.from_orm(obj).dict()
    data['phone_number_value'] = obj.phone_number.phone_number
    return data


def _call(obj) -> dict:
    return PhoneCallOut.from_orm(obj).dict()


def _twiml(response) -> HttpResponse:
    return HttpResponse(str(response), content_type='text/xml')


def _params(request: HttpRequest) -> dict:
    params = request.GET.dict()
    params.update(request.POST.dict())
    return params


# =============================================================================
# Usage & wallet
# =============================================================================

@router.get("/usage-stats", auth=None)
def usage_stats(request: HttpRequest):
    user = require_permission(request, Permissions.TELEPHONY_VIEW)
    return {"success": True, "data": services.usage_stats(user)}


@router.get("/time-remaining", auth=None)
def time_remaining(request: HttpRequest):
    user = require_permission(request, Permissions.TELEPHONY_VIEW)
    return {"success": True, "data": billing_service.time_remaining(user)}


@billing_router.get("/me", auth=None)
def billing_me(request: HttpRequest):
    user = require_auth(request)
    return billing_service.billing_summary(user)


# =============================================================================
# Browser calling
# =============================================================================

def _access_token(request: HttpRequest, identity: Optional[str] = None):
    user = require_permission(request, Permissions.TELEPHONY_CALL)

    numbers = services.list_active_numbers(user)
    if not numbers:
        raise HttpError(400, "No phone numbers available. Please purchase a phone number first.")

    try:
        billing_service.assert_can_call(user)
    except InsufficientBalanceError as e:
        raise HttpError(402, str(e))

    identity = identity or f"user-{user.id}"
    try:
        token = twilio_client.voice_access_token(identity)
    except TwilioServiceError as e:
        raise HttpError(500, str(e))

    return {
        "success": True,
        "token": token,
        "identity": identity,
        "availableNumbers": [
            {"phoneNumber": n.phone_number, "friendlyName": n.friendly_name}
            for n in numbers
        ],
    }


@router.get("/access-token", auth=None)
def access_token(request: HttpRequest):
    """Voice SDK token for placing calls from the browser."""
    return _access_token(request)


@router.post("/access-token", auth=None)
def access_token_for_identity(request: HttpRequest, payload: AccessTokenIn):
    return _access_token(request, payload.identity)


# =============================================================================
# Buying numbers
# =============================================================================

@router.get("/available-numbers", auth=None)
def available_numbers(request: HttpRequest, areaCode: Optional[str] = None, country: str = 'US', limit: int = 20):
    require_permission(request, Permissions.TELEPHONY_VIEW)
    try:
        numbers = services.available_numbers(country, areaCode, limit)
    except TwilioServiceError as e:
        raise HttpError(502, str(e))
    return {"success": True, "availableNumbers": numbers}


@router.post("/buy-number", auth=None)
def buy_number(request: HttpRequest, payload: BuyNumberIn):
    user = require_permission(request, Permissions.TELEPHONY_MANAGE_NUMBERS)
    try:
        return services.buy_number(user, payload.phoneNumber, payload.areaCode, payload.country)
    except InsufficientBalanceError as e:
        raise HttpError(402, str(e))
    except NumberUnavailableError as e:
        raise HttpError(404, str(e))
    except TwilioServiceError as e:
        raise HttpError(502, f"Failed to purchase phone number: {e}")
    except ValueError as e:
        raise HttpError(400, str(e))


# =============================================================================
# Twilio webhooks
# =============================================================================

@router.post("/twiml", auth=None)
def twiml(request: HttpRequest):
    params = _params(request)
    try:
        response = voice.call_twiml(params)
    except Exception as e:
        logger.exception(f"TwiML generation failed for call {params.get('CallSid')}: {e}")
        response = voice.error_twiml()
    return _twiml(response)


@router.get("/whisper", auth=None)
def whisper(request: HttpRequest):
    """Fetched by Twilio with GET for the answering leg of a forwarded call."""
    pn = request.GET.get('pn', '').strip()
    caller = request.GET.get('from', '').strip()
    return _twiml(voice.whisper_twiml(pn, caller))


@router.post("/status-callback", auth=None)
def status_callback(request: HttpRequest):
    params = request.POST
    if not params.get('CallSid'):
        raise HttpError(400, "CallSid is required")
    services.update_call_status(
        params['CallSid'],
        params.get('CallStatus'),
        duration=params.get('CallDuration'),
        price=params.get('CallPrice'),
        price_unit=params.get('CallPriceUnit'),
    )
    return HttpResponse(status=200)


@router.post("/recording-callback", auth=None)
def recording_callback(request: HttpRequest):
    params = request.POST
    if not params.get('CallSid'):
        raise HttpError(400, "CallSid is required")
    services.update_call_recording(params['CallSid'], params.dict())
    return HttpResponse(status=200)


# =============================================================================
# Call logs
# =============================================================================

@router.get("/call-logs", auth=None)
def call_logs(request: HttpRequest, page: int = 1, limit: int = 20, status: Optional[str] = None):
    user = require_permission(request, Permissions.TELEPHONY_VIEW)
    calls, pagination = services.list_calls(user, page, limit, status)
    return {
        "success": True,
        "callLogs": [_call(c) for c in calls],
        "pagination": pagination,
    }


@router.get("/call-logs/{call_sid}", auth=None)
def call_log_detail(request: HttpRequest, call_sid: str):
    user = require_permission(request, Permissions.TELEPHONY_VIEW)
    call = services.get_call(call_sid)
    if call is None:
        raise HttpError(404, "Call log not found")
    if call.user_id != user.id:
        raise HttpError(403, "Access denied")
    return {"success": True, "callLog": _call(call)}


# =============================================================================
# My numbers
# =============================================================================

@router.get("/my-numbers", auth=None)
def my_numbers(request: HttpRequest):
    user = require_permission(request, Permissions.TELEPHONY_VIEW)
    return {
        "success": True,
        "phoneNumbers": [_number(n) for n in services.list_numbers(user)],
        "stats": services.number_stats(user),
    }


@router.get("/my-numbers/active", auth=None)
def my_active_numbers(request: HttpRequest):
    user = require_permission(request, Permissions.TELEPHONY_VIEW)
    return {"success": True, "activeNumbers": [_number(n) for n in services.list_active_numbers(user)]}


@router.put("/my-numbers/{number_id}", auth=None)
def update_my_number(request: HttpRequest, number_id: int, payload: PhoneNumberUpdate):
    user = require_permission(request, Permissions.TELEPHONY_MANAGE_NUMBERS)
    number = services.update_number(user, number_id, payload.dict(exclude_unset=True))
    if number is None:
        raise HttpError(404, "Phone number not found")
    return {"success": True, "message": "Phone number updated successfully", "data": _number(number)}


@router.delete("/my-numbers/{number_id}", auth=None)
def release_my_number(request: HttpRequest, number_id: int):
    user = require_permission(request, Permissions.TELEPHONY_MANAGE_NUMBERS)
    if not services.release_number(user, number_id):
        raise HttpError(404, "Phone number not found")
    return {"success": True, "message": "Phone number released successfully"}


@router.get("/my-numbers/{number_id}/whisper", auth=None)
def get_whisper(request: HttpRequest, number_id: int):
    user = require_permission(request, Permissions.TELEPHONY_VIEW)
    number = services.get_number(user, number_id)
    if number is None:
        raise HttpError(404, "Phone number not found")
    return {"success": True, "whisper": services.whisper_settings(number)}


@router.put("/my-numbers/{number_id}/whisper", auth=None)
def update_whisper(request: HttpRequest, number_id: int, payload: WhisperUpdate):
    user = require_permission(request, Permissions.TELEPHONY_MANAGE_NUMBERS)
    try:
        number = services.update_whisper(user, number_id, payload.dict(exclude_unset=True))
    except ValueError as e:
        raise HttpError(400, str(e))
    if number is None:
        raise HttpError(404, "Phone number not found")
    return {
        "success": True,
        "message": "Whisper settings updated successfully",
        "whisper": services.whisper_settings(number),
    }


@router.post("/my-numbers/{number_id}/whisper/upload", auth=None)
def upload_whisper(request: HttpRequest, number_id: int, audio: UploadedFile = File(...)):
    """Upload a whisper clip; it is transcoded to 8 kHz mono mu-law before storage."""
    user = require_permission(request, Permissions.TELEPHONY_MANAGE_NUMBERS)
    try:
        result = services.upload_whisper_audio(user, number_id, audio.name, audio.content_type, audio.read())
    except ValueError as e:
        raise HttpError(400, str(e))
    except (TranscodingError, StorageError) as e:
        raise HttpError(500, str(e))
    if result is None:
        raise HttpError(404, "Phone number not found")
    return {"success": True, "message": "Whisper audio uploaded and transcoded successfully", **result}


# =============================================================================
# Call forwarding
# =============================================================================

@forwarding_router.get("", auth=None)
def list_forwardings(request: HttpRequest):
    user = require_permission(request, Permissions.TELEPHONY_VIEW)
    return {"success": True, "data": [_forwarding(f) for f in services.list_forwardings(user)]}


@forwarding_router.post("", response={201: dict}, auth=None)
def create_forwarding(request: HttpRequest, payload: CallForwardingIn):
    user = require_permission(request, Permissions.TELEPHONY_MANAGE_NUMBERS)
    try:
        forwarding = services.create_forwarding(
            user,
            payload.phone_number_id,
            payload.forward_to_number,
            payload.forwarding_type,
            payload.ring_timeout,
        )
    except PhoneNumber.DoesNotExist:
        raise HttpError(404, "Phone number not found or does not belong to you")
    except ValueError as e:
        raise HttpError(400, str(e))
    return 201, {
        "success": True,
        "message": "Call forwarding created successfully",
        "data": _forwarding(forwarding),
    }


@forwarding_router.get("/phone-number/{number_id}", auth=None)
def forwarding_for_number(request: HttpRequest, number_id: int):
    user = require_permission(request, Permissions.TELEPHONY_VIEW)
    if services.get_number(user, number_id) is None:
        raise HttpError(404, "Phone number not found or does not belong to you")
    forwarding = services.forwarding_for_number(user, number_id)
    return {"success": True, "data": _forwarding(forwarding) if forwarding else None}


@forwarding_router.put("/{forwarding_id}", auth=None)
def update_forwarding(request: HttpRequest, forwarding_id: int, payload: CallForwardingUpdate):
    user = require_permission(request, Permissions.TELEPHONY_MANAGE_NUMBERS)
    try:
        forwarding = services.update_forwarding(user, forwarding_id, payload.dict(exclude_unset=True))
    except ValueError as e:
        raise HttpError(400, str(e))
    if forwarding is None:
        raise HttpError(404, "Call forwarding setting not found")
    return {
        "success": True,
        "message": "Call forwarding updated successfully",
        "data": _forwarding(forwarding),
    }


@forwarding_router.patch("/{forwarding_id}/toggle", auth=None)
def toggle_forwarding(request: HttpRequest, forwarding_id: int, payload: ToggleIn):
    user = require_permission(request, Permissions.TELEPHONY_MANAGE_NUMBERS)
    if payload.is_active is None:
        raise HttpError(400, "is_active field is required")
    forwarding = services.update_forwarding(user, forwarding_id, {"is_active": payload.is_active})
    if forwarding is None:
        raise HttpError(404, "Call forwarding setting not found")
    state = "activated" if forwarding.is_active else "deactivated"
    return {"success": True, "message": f"Call forwarding {state} successfully", "data": _forwarding(forwarding)}


@forwarding_router.delete("/{forwarding_id}", auth=None)
def delete_forwarding(request: HttpRequest, forwarding_id: int):
    user = require_permission(request, Permissions.TELEPHONY_MANAGE_NUMBERS)
    if not services.delete_forwarding(user, forwarding_id):
        raise HttpError(404, "Call forwarding setting not found")
    return {"success": True, "message": "Call forwarding deleted successfully"}
