"""
Phone numbers, call forwarding and call logs.

Everything here is owned by a single user; lookups always filter on the
owner so another user's rows read as missing.
"""
import logging
import math
from typing import List, Optional, Tuple

from django.db.models import Avg, Count, Q, Sum

from apps.activity.services import log_activity, ActivityType
from apps.core import media_storage
from . import audio, billing_service, twilio_client
from .models import PhoneNumber, CallForwarding, PhoneCall, CallDirection, ForwardingType, WhisperType
from .twilio_client import TwilioServiceError

logger = logging.getLogger(__name__)

DEFAULT_VOICE = 'alice'
DEFAULT_LANGUAGE = 'en-US'


class NumberUnavailableError(Exception):
    """Twilio had no number matching the request."""


# =============================================================================
# Phone numbers
# =============================================================================

def list_numbers(user) -> List[PhoneNumber]:
    return list(PhoneNumber.objects.filter(user=user))


def list_active_numbers(user) -> List[PhoneNumber]:
    return list(PhoneNumber.objects.filter(user=user, is_active=True))


def number_stats(user) -> dict:
    stats = PhoneNumber.objects.filter(user=user).aggregate(
        total_numbers=Count('id'),
        active_numbers=Count('id', filter=Q(is_active=True)),
        total_purchase_cost=Sum('purchase_price'),
        total_monthly_cost=Sum('monthly_cost'),
    )
    return {
        'total_numbers': stats['total_numbers'] or 0,
        'active_numbers': stats['active_numbers'] or 0,
        'total_purchase_cost': float(stats['total_purchase_cost'] or 0),
        'total_monthly_cost': float(stats['total_monthly_cost'] or 0),
    }


def get_number(user, number_id: int) -> Optional[PhoneNumber]:
    try:
        return PhoneNumber.objects.get(user=user, id=number_id)
    except PhoneNumber.DoesNotExist:
        return None


def find_by_phone_number(phone_number: str) -> Optional[PhoneNumber]:
    if not phone_number:
        return None
    return PhoneNumber.objects.filter(phone_number=phone_number).select_related('user').first()


def available_numbers(country: str = 'US', area_code: Optional[str] = None, limit: int = 20) -> List[dict]:
    numbers = twilio_client.search_available_numbers(country, area_code, limit)
    return [
        {
            'phoneNumber': n.phone_number,
            'friendlyName': n.friendly_name,
            'locality': n.locality,
            'region': n.region,
            'country': n.iso_country,
            'capabilities': n.capabilities,
        }
        for n in numbers
    ]


def _purchase(phone_number: Optional[str], area_code: Optional[str], country: str) -> Tuple[object, dict]:
    """
    Buy a number from Twilio.

    A specific number that can no longer be bought falls back to the
    first available number in the same area code.
    """
    if phone_number:
        try:
            purchased = twilio_client.purchase_number(phone_number)
            return purchased, {'locality': None, 'region': None, 'capabilities': {'voice': True}}
        except TwilioServiceError as e:
            logger.warning(f"Could not buy {phone_number} directly ({e}); searching its area code")
            candidates = twilio_client.search_available_numbers(country, phone_number[2:5], limit=5)
            if not candidates:
                raise NumberUnavailableError(
                    f"The specific number {phone_number} is no longer available, and no alternative "
                    f"numbers were found in the same area code."
                )
    else:
        candidates = twilio_client.search_available_numbers(country, area_code, limit=20)
        if not candidates:
            raise NumberUnavailableError("No available phone numbers found for the specified criteria")

    chosen = candidates[0]
    purchased = twilio_client.purchase_number(chosen.phone_number)
    return purchased, {
        'locality': chosen.locality,
        'region': chosen.region,
        'capabilities': chosen.capabilities,
    }


def buy_number(user, phone_number: Optional[str] = None, area_code: Optional[str] = None, country: str = 'US') -> dict:
    """
    Buy a number for `user`. The first number a user ever buys is free.

    Raises:
        InsufficientBalanceError: paid purchase below the minimum balance.
        ValueError: the user already owns `phone_number`.
        NumberUnavailableError: nothing matched.
        TwilioServiceError: Twilio refused the purchase.
    """
    billing_service.ensure_monthly_minutes_reset(user)
    is_free = not user.has_claimed_free_number
    if not is_free:
        billing_service.assert_min_balance(user)

    if phone_number and PhoneNumber.objects.filter(user=user, phone_number=phone_number).exists():
        raise ValueError("You already own this phone number")

    purchased, details = _purchase(phone_number, area_code, country)

    number = PhoneNumber.objects.create(
        user=user,
        phone_number=purchased.phone_number,
        twilio_sid=purchased.sid,
        friendly_name=purchased.friendly_name or f"{details['locality'] or 'Unknown'} Number",
        country=country,
        region=details['region'],
        locality=details['locality'],
        purchase_price=getattr(purchased, 'price', None),
        purchase_price_unit=getattr(purchased, 'price_unit', None) or 'USD',
        monthly_cost=billing_service.PHONE_NUMBER_MONTHLY_PRICE,
        capabilities=details['capabilities'],
    )
    charge = billing_service.charge_for_number_purchase(user, number, is_free)

    log_activity(
        org_id=user.org_id,
        activity_type=ActivityType.PHONE_NUMBER_PURCHASED,
        title="Phone number purchased",
        description=f"{number.phone_number} added{' (free)' if is_free else ''}",
        performed_by=user,
        metadata={"phone_number_id": number.id},
    )

    is_different = bool(phone_number) and phone_number != number.phone_number
    message = 'Phone number purchased successfully'
    if is_different:
        message = (
            f"Phone number purchased successfully. Note: {phone_number} was no longer available, "
            f"so we got you {number.phone_number} instead."
        )
    return {
        'success': True,
        'message': message,
        'id': number.id,
        'phoneNumber': number.phone_number,
        'requestedNumber': phone_number,
        'isDifferentNumber': is_different,
        'sid': number.twilio_sid,
        'friendlyName': number.friendly_name,
        'locality': number.locality,
        'region': number.region,
        'billing': {
            'charged': charge['charged'],
            'nextRenewalAt': charge['nextRenewalAt'],
            'wasFree': is_free,
        },
    }


def update_number(user, number_id: int, data: dict) -> Optional[PhoneNumber]:
    number = get_number(user, number_id)
    if number is None:
        return None

    for field in ('friendly_name', 'is_active'):
        if data.get(field) is not None:
            setattr(number, field, data[field])
    number.save()

    twilio_params = {
        key: data[key]
        for key in ('voice_url', 'status_callback', 'status_callback_method')
        if data.get(key)
    }
    if twilio_params:
        try:
            twilio_client.update_number(number.twilio_sid, **twilio_params)
        except TwilioServiceError as e:
            logger.error(f"Twilio configuration update failed for {number.phone_number}: {e}")
    return number


def release_number(user, number_id: int) -> bool:
    number = get_number(user, number_id)
    if number is None:
        return False
    try:
        twilio_client.release_number(number.twilio_sid)
    except TwilioServiceError as e:
        logger.error(f"Twilio release failed for {number.phone_number}: {e}")
    if number.whisper_media_key:
        media_storage.delete(number.whisper_media_key)
    number.delete()
    return True


# =============================================================================
# Whisper
# =============================================================================

def whisper_settings(number: PhoneNumber) -> dict:
    return {
        'enabled': number.whisper_enabled,
        'type': number.whisper_type or WhisperType.SAY,
        'text': number.whisper_text or None,
        'voice': number.whisper_voice or DEFAULT_VOICE,
        'language': number.whisper_language or DEFAULT_LANGUAGE,
        'media_url': number.whisper_media_url or None,
    }


def update_whisper(user, number_id: int, data: dict) -> Optional[PhoneNumber]:
    """
    Raises:
        ValueError: bad whisper_type or nothing to update.
    """
    number = get_number(user, number_id)
    if number is None:
        return None

    changes = {k: v for k, v in data.items() if v is not None}
    if 'whisper_type' in changes:
        changes['whisper_type'] = changes['whisper_type'].lower()
        if changes['whisper_type'] not in WhisperType.values:
            raise ValueError('whisper_type must be "say" or "play"')
    if not changes:
        raise ValueError("No fields to update")

    for attr, value in changes.items():
        setattr(number, attr, value)
    number.save()
    return number


def upload_whisper_audio(user, number_id: int, filename: str, content_type: str, data: bytes) -> Optional[dict]:
    """
    Transcode an uploaded clip for the phone network and make it the
    number's whisper.

    Raises:
        ValueError: file rejected.
        TranscodingError: ffmpeg could not read it.
        StorageError: upload failed.
    """
    number = get_number(user, number_id)
    if number is None:
        return None

    audio.validate_audio(filename, content_type, len(data))
    wav = audio.transcode_to_phone_wav(data)
    key = media_storage.save_bytes(audio.whisper_key(number.id), wav, 'audio/wav')

    previous_key = number.whisper_media_key
    number.whisper_enabled = True
    number.whisper_type = WhisperType.PLAY
    number.whisper_media_key = key
    number.whisper_media_url = media_storage.url_for(key)
    number.save()

    if previous_key and previous_key != key:
        media_storage.delete(previous_key)

    return {
        'media_url': number.whisper_media_url,
        'whisper': {
            'enabled': True,
            'type': WhisperType.PLAY,
            'media_url': number.whisper_media_url,
        },
        'transcoding': {
            'original_size': len(data),
            'transcoded_size': len(wav),
            'format': audio.PHONE_FORMAT_LABEL,
            'phone_grade': True,
        },
    }


# =============================================================================
# Call forwarding
# =============================================================================

def list_forwardings(user) -> List[CallForwarding]:
    return list(CallForwarding.objects.filter(user=user).select_related('phone_number'))


def get_forwarding(user, forwarding_id: int) -> Optional[CallForwarding]:
    try:
        return CallForwarding.objects.get(user=user, id=forwarding_id)
    except CallForwarding.DoesNotExist:
        return None


def forwarding_for_number(user, number_id: int) -> Optional[CallForwarding]:
    return CallForwarding.objects.filter(user=user, phone_number_id=number_id).first()


def create_forwarding(user, phone_number_id, forward_to_number, forwarding_type=None, ring_timeout=None) -> CallForwarding:
    """
    Raises:
        ValueError: missing fields, or the number already has forwarding.
        PhoneNumber.DoesNotExist: the number is not the user's.
    """
    if not phone_number_id or not forward_to_number:
        raise ValueError("Phone number ID and forward to number are required")
    if forwarding_type and forwarding_type not in ForwardingType.values:
        raise ValueError(f"forwarding_type must be one of: {', '.join(ForwardingType.values)}")

    number = PhoneNumber.objects.get(user=user, id=phone_number_id)
    if CallForwarding.objects.filter(phone_number=number).exists():
        raise ValueError(
            "Call forwarding already exists for this phone number. Please update the existing setting instead."
        )

    return CallForwarding.objects.create(
        user=user,
        phone_number=number,
        forward_to_number=forward_to_number,
        forwarding_type=forwarding_type or ForwardingType.ALWAYS,
        ring_timeout=ring_timeout or 20,
    )


def update_forwarding(user, forwarding_id: int, data: dict) -> Optional[CallForwarding]:
    forwarding = get_forwarding(user, forwarding_id)
    if forwarding is None:
        return None

    changes = {k: v for k, v in data.items() if v is not None}
    if not changes:
        raise ValueError("No fields to update")
    if 'forwarding_type' in changes and changes['forwarding_type'] not in ForwardingType.values:
        raise ValueError(f"forwarding_type must be one of: {', '.join(ForwardingType.values)}")

    for attr, value in changes.items():
        setattr(forwarding, attr, value)
    forwarding.save()
    return forwarding


def delete_forwarding(user, forwarding_id: int) -> bool:
    deleted, _ = CallForwarding.objects.filter(user=user, id=forwarding_id).delete()
    return deleted > 0


def active_forwarding(number: PhoneNumber) -> Optional[CallForwarding]:
    return CallForwarding.objects.filter(phone_number=number, is_active=True).first()


# =============================================================================
# Call logs
# =============================================================================

def list_calls(user, page: int = 1, limit: int = 20, status: Optional[str] = None) -> Tuple[List[PhoneCall], dict]:
    queryset = PhoneCall.objects.filter(user=user)
    if status:
        queryset = queryset.filter(status=status)

    page = max(page or 1, 1)
    limit = limit if limit and limit > 0 else 20
    total = queryset.count()
    offset = (page - 1) * limit
    return list(queryset[offset:offset + limit]), {
        'page': page,
        'limit': limit,
        'total': total,
        'totalPages': math.ceil(total / limit),
    }


def get_call(call_sid: str) -> Optional[PhoneCall]:
    try:
        return PhoneCall.objects.get(call_sid=call_sid)
    except PhoneCall.DoesNotExist:
        return None


def call_stats(user) -> dict:
    stats = PhoneCall.objects.filter(user=user).aggregate(
        total_calls=Count('id'),
        completed_calls=Count('id', filter=Q(status='completed')),
        failed_calls=Count('id', filter=Q(status='failed')),
        busy_calls=Count('id', filter=Q(status='busy')),
        no_answer_calls=Count('id', filter=Q(status='no-answer')),
        total_duration=Sum('duration'),
        avg_duration=Avg('duration'),
        total_cost=Sum('price'),
    )
    return {
        'total_calls': stats['total_calls'] or 0,
        'completed_calls': stats['completed_calls'] or 0,
        'failed_calls': stats['failed_calls'] or 0,
        'busy_calls': stats['busy_calls'] or 0,
        'no_answer_calls': stats['no_answer_calls'] or 0,
        'total_duration': stats['total_duration'] or 0,
        'avg_duration': float(stats['avg_duration'] or 0),
        'total_cost': float(stats['total_cost'] or 0),
    }


def usage_stats(user) -> dict:
    calls = call_stats(user)
    return {
        'total_calls': calls['total_calls'],
        'total_duration_seconds': calls['total_duration'],
        'total_numbers': PhoneNumber.objects.filter(user=user).count(),
    }


def record_call(call_sid: str, number: PhoneNumber, from_number: str, to_number: str, direction: str) -> PhoneCall:
    call, created = PhoneCall.objects.get_or_create(
        call_sid=call_sid,
        defaults={
            'user': number.user,
            'phone_number': number,
            'from_number': from_number,
            'to_number': to_number,
            'direction': direction,
            'status': 'initiated',
            'record': True,
        },
    )
    if created and direction == CallDirection.INBOUND:
        log_activity(
            org_id=number.user.org_id,
            activity_type=ActivityType.CALL_LOG_CREATED,
            title="Incoming call",
            description=f"Call from {from_number} to {to_number}",
            metadata={"call_sid": call_sid},
        )
    return call


def update_call_status(call_sid: str, status: str, duration=None, price=None, price_unit=None) -> Optional[PhoneCall]:
    """Apply a Twilio status callback and bill the call once it completes."""
    call = get_call(call_sid)
    if call is None:
        logger.warning(f"Status callback for unknown call {call_sid}")
        return None

    call.status = status or call.status
    if duration not in (None, ''):
        call.duration = int(duration)
    if price not in (None, ''):
        call.price = price
    if price_unit:
        call.price_unit = price_unit
    call.save()

    return billing_service.handle_call_status_update(call_sid, status, duration) or call


def update_call_recording(call_sid: str, data: dict) -> Optional[PhoneCall]:
    call = get_call(call_sid)
    if call is None:
        logger.warning(f"Recording callback for unknown call {call_sid}")
        return None

    call.recording_url = data.get('RecordingUrl') or call.recording_url
    call.recording_sid = data.get('RecordingSid') or call.recording_sid
    call.recording_status = data.get('RecordingStatus') or call.recording_status
    if data.get('RecordingDuration'):
        call.recording_duration = int(data['RecordingDuration'])
    if data.get('RecordingChannels'):
        call.recording_channels = int(data['RecordingChannels'])
    call.save()
    return call
