"""
Momentum - Login Streaks
========================

Consecutive-day login counter kept on the user row.
"""

from datetime import date, datetime, timezone
from typing import Optional

import structlog

from momentum.core.models import User

logger = structlog.get_logger()


def next_streak(current: int, last_login_date: Optional[date], today: date) -> int:
    """
    Streak after a login on `today`.

    Same day keeps the streak, the next day extends it,
    any longer gap (or no previous login) restarts it at 1.
    """
    if last_login_date is None:
        return 1

    days = (today - last_login_date).days
    if days == 0:
        return current or 1
    if days == 1:
        return current + 1
    if days > 1:
        return 1
    # Clock moved backwards; keep what we have
    return current or 1


def record_login(user: User, now: Optional[datetime] = None) -> int:
    """Update streak fields on a login. Caller commits."""
    now = now or datetime.now(timezone.utc)
    today = now.date()

    streak = next_streak(user.streak_count or 0, user.last_login_date, today)
    if streak != user.streak_count:
        logger.info("streak_updated", user_id=str(user.id), streak=streak)

    user.streak_count = streak
    user.last_login_date = today
    user.last_login = now
    return streak
