"""
Calling wallet.

Every user gets MONTHLY_FREE_MINUTES each calendar month (UTC). Completed
calls consume free minutes first; the rest is charged to the prepaid
balance at CALL_RATE_PER_MINUTE. Paid phone numbers cost
PHONE_NUMBER_MONTHLY_PRICE up front and every 30 days after that.
"""
import logging
import math
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q, Sum
from django.utils import timezone

from .models import PhoneCall, PhoneNumber

logger = logging.getLogger(__name__)

MIN_REQUIRED_BALANCE = Decimal('5.00')
CALL_RATE_PER_MINUTE = Decimal('0.02')
MONTHLY_FREE_MINUTES = 200
PHONE_NUMBER_MONTHLY_PRICE = Decimal('2.00')
RENEWAL_PERIOD = timedelta(days=30)

CENT = Decimal('0.01')


class InsufficientBalanceError(Exception):
    def __init__(self, message: str = "Insufficient balance. Minimum $5 required."):
        super().__init__(message)


def pricing() -> dict:
    return {
        'minRequiredBalance': float(MIN_REQUIRED_BALANCE),
        'callRatePerMinute': float(CALL_RATE_PER_MINUTE),
        'monthlyFreeMinutes': MONTHLY_FREE_MINUTES,
        'phoneNumberMonthlyPrice': float(PHONE_NUMBER_MONTHLY_PRICE),
    }


def _month_start(now: datetime) -> datetime:
    now = now.astimezone(dt_timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def ensure_monthly_minutes_reset(user, now: Optional[datetime] = None):
    """Refill free minutes when they were never reset or last reset in an earlier UTC month."""
    now = now or timezone.now()
    last = user.free_minutes_last_reset
    if last is not None:
        last_utc = last.astimezone(dt_timezone.utc)
        now_utc = now.astimezone(dt_timezone.utc)
        if (last_utc.year, last_utc.month) == (now_utc.year, now_utc.month):
            return user

    user.free_minutes_remaining = MONTHLY_FREE_MINUTES
    user.free_minutes_last_reset = now
    user.save(update_fields=['free_minutes_remaining', 'free_minutes_last_reset'])
    logger.info(f"Free minutes reset for user {user.id}")
    return user


def reset_free_minutes() -> int:
    """Monthly job: refill every user whose minutes were not reset this month."""
    User = get_user_model()
    now = timezone.now()
    stale = User.objects.filter(
        Q(free_minutes_last_reset__isnull=True) | Q(free_minutes_last_reset__lt=_month_start(now))
    )
    return stale.update(free_minutes_remaining=MONTHLY_FREE_MINUTES, free_minutes_last_reset=now)


def assert_min_balance(user) -> None:
    ensure_monthly_minutes_reset(user)
    if (user.balance or Decimal('0')) < MIN_REQUIRED_BALANCE:
        raise InsufficientBalanceError()


def assert_can_call(user) -> None:
    """Calls are allowed on free minutes; without them the balance must cover the minimum."""
    ensure_monthly_minutes_reset(user)
    if user.free_minutes_remaining <= 0:
        assert_min_balance(user)


def ceil_minutes_from_seconds(seconds) -> int:
    try:
        seconds = int(seconds or 0)
    except (TypeError, ValueError):
        return 0
    if seconds <= 0:
        return 0
    return math.ceil(seconds / 60)


def charge_for_completed_call(call: PhoneCall) -> Optional[PhoneCall]:
    """
    Charge a completed call once.

    Both the user row and the call row are locked; a call already marked
    billed is left untouched.
    """
    if call is None or call.is_billed:
        return call

    User = get_user_model()
    ensure_monthly_minutes_reset(call.user)
    minutes = ceil_minutes_from_seconds(call.duration)

    with transaction.atomic():
        locked_call = PhoneCall.objects.select_for_update().get(pk=call.pk)
        if locked_call.is_billed:
            return locked_call

        if minutes <= 0:
            locked_call.is_billed = True
            locked_call.billed_minutes = 0
            locked_call.billed_amount = Decimal('0.00')
            locked_call.save(update_fields=['is_billed', 'billed_minutes', 'billed_amount', 'updated_at'])
            return locked_call

        user = User.objects.select_for_update().get(pk=locked_call.user_id)
        free_used = min(user.free_minutes_remaining, minutes)
        billable = minutes - free_used
        amount = (Decimal(billable) * CALL_RATE_PER_MINUTE).quantize(CENT, rounding=ROUND_HALF_UP)

        user.free_minutes_remaining -= free_used
        user.balance = (user.balance - amount).quantize(CENT, rounding=ROUND_HALF_UP)
        user.save(update_fields=['free_minutes_remaining', 'balance'])

        locked_call.is_billed = True
        locked_call.billed_minutes = billable
        locked_call.billed_amount = amount
        locked_call.save(update_fields=['is_billed', 'billed_minutes', 'billed_amount', 'updated_at'])

    logger.info(
        f"Billed call {locked_call.call_sid}: {minutes} min ({free_used} free), ${amount}"
    )
    return locked_call


def handle_call_status_update(call_sid: str, status: str, duration=None) -> Optional[PhoneCall]:
    """Bill the call when Twilio reports it completed; other statuses are ignored."""
    if status != 'completed':
        return None
    try:
        call = PhoneCall.objects.select_related('user').get(call_sid=call_sid)
    except PhoneCall.DoesNotExist:
        return None
    if duration not in (None, ''):
        call.duration = int(duration)
    return charge_for_completed_call(call)


def charge_for_number_purchase(user, number: PhoneNumber, is_free: bool) -> dict:
    ensure_monthly_minutes_reset(user)
    User = get_user_model()

    if is_free:
        with transaction.atomic():
            number.is_free = True
            number.next_renewal_at = None
            number.save(update_fields=['is_free', 'next_renewal_at', 'updated_at'])
            User.objects.filter(pk=user.pk).update(has_claimed_free_number=True)
        user.has_claimed_free_number = True
        return {'charged': 0, 'nextRenewalAt': None}

    next_renewal = timezone.now() + RENEWAL_PERIOD
    with transaction.atomic():
        locked = User.objects.select_for_update().get(pk=user.pk)
        locked.balance = (locked.balance - PHONE_NUMBER_MONTHLY_PRICE).quantize(CENT)
        locked.save(update_fields=['balance'])
        number.is_free = False
        number.next_renewal_at = next_renewal
        number.save(update_fields=['is_free', 'next_renewal_at', 'updated_at'])
    user.balance = locked.balance
    return {'charged': float(PHONE_NUMBER_MONTHLY_PRICE), 'nextRenewalAt': next_renewal.isoformat()}


def renew_phone_numbers(now: Optional[datetime] = None) -> dict:
    """
    Charge every paid number whose renewal date has passed.

    A number whose owner cannot pay the monthly price is deactivated
    instead of pushing the balance below zero.
    """
    now = now or timezone.now()
    User = get_user_model()
    renewed, deactivated = 0, 0

    due = PhoneNumber.objects.filter(is_active=True, is_free=False, next_renewal_at__lte=now)
    for number in due:
        with transaction.atomic():
            user = User.objects.select_for_update().get(pk=number.user_id)
            if user.balance < number.monthly_cost:
                number.is_active = False
                number.save(update_fields=['is_active', 'updated_at'])
                deactivated += 1
                logger.warning(f"Phone number {number.phone_number} deactivated: balance too low for renewal")
                continue
            user.balance = (user.balance - number.monthly_cost).quantize(CENT)
            user.save(update_fields=['balance'])
            number.next_renewal_at = number.next_renewal_at + RENEWAL_PERIOD
            number.save(update_fields=['next_renewal_at', 'updated_at'])
            renewed += 1

    return {'renewed': renewed, 'deactivated': deactivated}


def time_remaining(user) -> dict:
    """
    Calling time left this period.

    Free time is the free minutes minus the recorded seconds since the
    period started. Once that is gone the balance decides how many paid
    seconds remain.
    """
    ensure_monthly_minutes_reset(user)
    period_start = user.free_minutes_last_reset or _month_start(timezone.now())

    used = PhoneCall.objects.filter(
        user=user, created_at__gte=period_start
    ).aggregate(total=Sum('recording_duration'))['total'] or 0

    free_minutes = user.free_minutes_remaining or 0
    free_seconds = max(0, free_minutes * 60 - used)

    balance = user.balance or Decimal('0')
    paid_seconds = 0
    if free_seconds <= 0 and balance > 0:
        paid_seconds = int(balance / (CALL_RATE_PER_MINUTE / 60))

    total_seconds = free_seconds if free_seconds > 0 else paid_seconds
    return {
        'period_start': period_start.isoformat(),
        'used_recording_seconds': used,
        'free_minutes_remaining': free_minutes,
        'free_seconds_remaining': free_seconds,
        'balance_usd': float(balance),
        'call_rate_per_minute_usd': float(CALL_RATE_PER_MINUTE),
        'paid_seconds_available': paid_seconds,
        'total_seconds_available': total_seconds,
        'total_minutes_available': total_seconds // 60,
    }


def billing_summary(user) -> dict:
    ensure_monthly_minutes_reset(user)
    return {
        'success': True,
        'userId': str(user.id),
        'balance': float(user.balance),
        'freeMinutesRemaining': user.free_minutes_remaining,
        'hasClaimedFreeNumber': user.has_claimed_free_number,
        'pricing': pricing(),
    }
