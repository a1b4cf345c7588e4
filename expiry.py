from datetime import datetime, timezone

from models import Coupon, CouponStatus


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def is_usable(coupon: Coupon, now: datetime) -> bool:
    """
    A coupon is usable only while it is Active and expiresAt is strictly after now.

    The stored status is refreshed by the expiry job and may lag behind the
    clock, so expiresAt is always checked as well. Callers capture `now` once
    per request and reuse it for every coupon they look at.
    """
    if coupon.status == CouponStatus.EXPIRED:
        return False
    return coupon.expiresAt > now
