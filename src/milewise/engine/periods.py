import calendar
from datetime import date, timedelta

from milewise.domain.models import Period, RewardRule

DEFAULT_STATEMENT_DAY = 1


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _clamped_day(year: int, month: int, day: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def calendar_month(on: date) -> Period:
    last_day = calendar.monthrange(on.year, on.month)[1]
    return Period(start=on.replace(day=1), end=on.replace(day=last_day))


def statement_month(on: date, statement_day: int | None) -> Period:
    """Billing cycle containing `on`, anchored on `statement_day`.

    A cycle runs from day D of one month to day D-1 of the next. Days past the
    end of a short month are clamped to its last day, so a card billed on the
    31st closes on Feb 28/29.
    """
    day = statement_day or DEFAULT_STATEMENT_DAY
    if not 1 <= day <= 31:
        raise ValueError(f"statement day must be within 1..31, got {day}")

    start_this_month = _clamped_day(on.year, on.month, day)
    if on >= start_this_month:
        next_year, next_month = _shift_month(on.year, on.month, 1)
        end = _clamped_day(next_year, next_month, day) - timedelta(days=1)
        return Period(start=start_this_month, end=end)

    prev_year, prev_month = _shift_month(on.year, on.month, -1)
    start = _clamped_day(prev_year, prev_month, day)
    return Period(start=start, end=start_this_month - timedelta(days=1))


def promotional_window(rule: RewardRule) -> Period:
    valid_until = rule.promo_valid_until
    if valid_until is None:
        raise ValueError(f"rule '{rule.id}' has no promotional end date")
    return Period(start=rule.promo_valid_from or date.min, end=valid_until)


def is_promotion_expired(rule: RewardRule, now: date) -> bool:
    if rule.reward.cap_duration != "promotional_period":
        return False
    valid_until = rule.promo_valid_until
    return valid_until is not None and valid_until < now


def resolve_period(rule: RewardRule, on: date, statement_day: int | None = None) -> Period:
    duration = rule.reward.cap_duration
    if duration == "calendar_month":
        return calendar_month(on)
    if duration == "statement_month":
        return statement_month(on, statement_day)
    return promotional_window(rule)
