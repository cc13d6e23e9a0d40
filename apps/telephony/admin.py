from django.contrib import admin
from .models import PhoneNumber, CallForwarding, PhoneCall


@admin.register(PhoneNumber)
class PhoneNumberAdmin(admin.ModelAdmin):
    list_display = ['phone_number', 'user', 'friendly_name', 'is_active', 'is_free', 'next_renewal_at', 'whisper_enabled']
    list_filter = ['is_active', 'is_free', 'country']
    search_fields = ['phone_number', 'friendly_name', 'twilio_sid']


@admin.register(CallForwarding)
class CallForwardingAdmin(admin.ModelAdmin):
    list_display = ['phone_number', 'forward_to_number', 'forwarding_type', 'ring_timeout', 'is_active']
    list_filter = ['is_active', 'forwarding_type']


@admin.register(PhoneCall)
class PhoneCallAdmin(admin.ModelAdmin):
    list_display = ['call_sid', 'user', 'direction', 'from_number', 'to_number', 'status', 'duration', 'is_billed', 'billed_amount', 'created_at']
    list_filter = ['direction', 'status', 'is_billed']
    search_fields = ['call_sid', 'from_number', 'to_number']
    readonly_fields = ['created_at', 'updated_at']
