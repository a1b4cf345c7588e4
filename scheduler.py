import asyncio
from datetime import datetime
from typing import Optional

from expiry import is_usable, now_utc
from logger import get_logger
from models import CouponStatus
from storage import CouponStore

logger = get_logger("scheduler")


class CouponExpiryUpdater:
    """Marks Active coupons whose expiresAt has passed as Expired."""

    def __init__(self, store: CouponStore):
        self.store = store

    def update_expired_coupons(self, now: Optional[datetime] = None) -> int:
        if now is None:
            now = now_utc()

        try:
            coupons = self.store.get_all_active()
        except Exception as e:
            logger.error("Error fetching active coupons: %s", e)
            return 0

        expired = 0
        for coupon in coupons:
            if is_usable(coupon, now):
                continue
            try:
                self.store.update_status(coupon.id, CouponStatus.EXPIRED)
            except Exception as e:
                # one bad write must not stop the rest of the batch
                logger.error("Failed to update coupon %s: %s", coupon.id, e)
                continue
            logger.info("Coupon %s marked as expired", coupon.id)
            expired += 1
        return expired


async def run_expiry_loop(updater: CouponExpiryUpdater, interval_seconds: float) -> None:
    """Run the updater every `interval_seconds` until cancelled."""
    logger.info("Coupon expiry job started (every %gs)", interval_seconds)
    while True:
        logger.info("Running job to update expired coupons...")
        try:
            await asyncio.to_thread(updater.update_expired_coupons)
        except Exception:
            logger.exception("Coupon expiry job failed")
        await asyncio.sleep(interval_seconds)
