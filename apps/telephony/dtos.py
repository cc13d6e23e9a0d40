from typing import Optional

from ninja import Schema
from ninja.orm import create_schema
from pydantic import Field

from .models import PhoneNumber, CallForwarding, PhoneCall


PhoneNumberOut = create_schema(PhoneNumber, exclude=['user', 'whisper_media_key'])
CallForwardingOut = create_schema(CallForwarding, exclude=['user'])
PhoneCallOut = create_schema(PhoneCall, exclude=['user'])


class BuyNumberIn(Schema):
    phoneNumber: Optional[str] = None
    areaCode: Optional[str] = None
    country: str = Field('US', min_length=2, max_length=2)


class AccessTokenIn(Schema):
    identity: Optional[str] = None


class PhoneNumberUpdate(Schema):
    friendly_name: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None
    voice_url: Optional[str] = None
    status_callback: Optional[str] = None
    status_callback_method: Optional[str] = None


class WhisperUpdate(Schema):
    whisper_enabled: Optional[bool] = None
    whisper_type: Optional[str] = None
    whisper_text: Optional[str] = Field(None, max_length=255)
    whisper_voice: Optional[str] = None
    whisper_language: Optional[str] = None
    whisper_media_url: Optional[str] = None


class CallForwardingIn(Schema):
    phone_number_id: Optional[int] = None
    forward_to_number: Optional[str] = Field(None, max_length=20)
    forwarding_type: Optional[str] = None
    ring_timeout: Optional[int] = Field(None, ge=5, le=120)


class CallForwardingUpdate(Schema):
    forward_to_number: Optional[str] = Field(None, max_length=20)
    forwarding_type: Optional[str] = None
    ring_timeout: Optional[int] = Field(None, ge=5, le=120)
    is_active: Optional[bool] = None


class ToggleIn(Schema):
    is_active: Optional[bool] = None
