from datetime import date

import pytest
from pydantic import ValidationError

from milewise.domain.models import RewardRule, RewardSpec
from milewise.engine.periods import (
    calendar_month,
    is_promotion_expired,
    promotional_window,
    resolve_period,
    statement_month,
)
from tests.factories import make_rule


def test_calendar_month_spans_first_to_last_day() -> None:
    period = calendar_month(date(2028, 2, 10))

    assert period.start == date(2028, 2, 1)
    assert period.end == date(2028, 2, 29)


def test_statement_month_before_statement_day() -> None:
    period = statement_month(date(2026, 10, 10), 20)

    assert period.start == date(2026, 9, 20)
    assert period.end == date(2026, 10, 19)


def test_statement_month_on_or_after_statement_day() -> None:
    period = statement_month(date(2026, 10, 20), 20)

    assert period.start == date(2026, 10, 20)
    assert period.end == date(2026, 11, 19)


def test_statement_month_crosses_year_boundary() -> None:
    period = statement_month(date(2027, 1, 5), 15)

    assert period.start == date(2026, 12, 15)
    assert period.end == date(2027, 1, 14)


def test_statement_day_is_clamped_in_short_months() -> None:
    period = statement_month(date(2026, 2, 28), 31)

    assert period.start == date(2026, 2, 28)
    assert period.end == date(2026, 3, 30)


def test_missing_statement_day_behaves_like_calendar_month() -> None:
    assert statement_month(date(2026, 4, 17), None) == calendar_month(date(2026, 4, 17))


def test_invalid_statement_day_is_rejected() -> None:
    with pytest.raises(ValueError):
        statement_month(date(2026, 4, 17), 0)


def test_promotional_window_uses_rule_dates() -> None:
    rule = make_rule(
        "promo",
        cap=500,
        cap_duration="promotional_period",
        valid_from=date(2026, 9, 1),
        valid_until=date(2026, 11, 30),
    )

    period = resolve_period(rule, date(2026, 10, 1))

    assert (period.start, period.end) == (date(2026, 9, 1), date(2026, 11, 30))


def test_promotional_window_without_start_is_open_ended() -> None:
    rule = make_rule("promo", cap=500, cap_duration="promotional_period", valid_until=date(2026, 11, 30))

    assert promotional_window(rule).start == date.min


def test_promotional_rule_requires_end_date() -> None:
    with pytest.raises(ValidationError):
        RewardRule(
            id="promo",
            card_type_id="x-y",
            name="Promo",
            reward=RewardSpec(monthly_cap=100, cap_duration="promotional_period"),
        )


def test_promotion_expiry() -> None:
    rule = make_rule("promo", cap=500, cap_duration="promotional_period", valid_until=date(2026, 9, 30))

    assert is_promotion_expired(rule, date(2026, 10, 1))
    assert not is_promotion_expired(rule, date(2026, 9, 30))
    assert not is_promotion_expired(make_rule("monthly", cap=500), date(2030, 1, 1))
