"""
Momentum - Login Streak Tests
=============================
"""

from datetime import date, datetime, timezone

from momentum.core.models import User
from momentum.core.streaks import next_streak, record_login

TODAY = date(2026, 6, 10)


def test_first_login_starts_at_one():
    assert next_streak(0, None, TODAY) == 1


def test_same_day_keeps_streak():
    assert next_streak(4, TODAY, TODAY) == 4
    assert next_streak(0, TODAY, TODAY) == 1


def test_next_day_extends_streak():
    assert next_streak(4, date(2026, 6, 9), TODAY) == 5


def test_gap_resets_streak():
    assert next_streak(12, date(2026, 6, 7), TODAY) == 1


def test_clock_skew_keeps_streak():
    assert next_streak(3, date(2026, 6, 11), TODAY) == 3


def test_record_login_updates_user():
    user = User(email="streak@example.com", password_hash="x", streak_count=2,
                last_login_date=date(2026, 6, 9))
    now = datetime(2026, 6, 10, 8, 30, tzinfo=timezone.utc)

    assert record_login(user, now=now) == 3
    assert user.streak_count == 3
    assert user.last_login_date == TODAY
    assert user.last_login == now
