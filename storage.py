import uuid
from threading import RLock
from typing import Dict, List

from expiry import now_utc
from models import Coupon, CouponCreate, CouponStatus, CouponType, CouponUpdate


class CouponNotFound(Exception):
    def __init__(self, coupon_id: str):
        super().__init__(f"Coupon {coupon_id} not found")
        self.coupon_id = coupon_id


class CouponStore:
    """
    In-memory coupon storage.

    Shared between request handlers and the expiry job, so every access goes
    through one lock. Coupons are copied on the way in and out; callers never
    hold a reference to a stored object.
    """

    def __init__(self):
        self._coupons: Dict[str, Coupon] = {}
        self._lock = RLock()

    def get_by_id(self, coupon_id: str) -> Coupon:
        with self._lock:
            coupon = self._coupons.get(coupon_id)
            if coupon is None:
                raise CouponNotFound(coupon_id)
            return coupon.model_copy(deep=True)

    def get_all(self) -> List[Coupon]:
        with self._lock:
            return [c.model_copy(deep=True) for c in self._coupons.values()]

    def get_all_active(self) -> List[Coupon]:
        return [c for c in self.get_all() if c.status == CouponStatus.ACTIVE]

    def get_by_type(self, coupon_type: CouponType) -> List[Coupon]:
        return [c for c in self.get_all() if c.type == coupon_type]

    def create(self, params: CouponCreate) -> Coupon:
        now = now_utc()
        coupon = Coupon(
            id=uuid.uuid4().hex,
            rule=params.rule,
            description=params.description,
            status=CouponStatus.ACTIVE,
            expiresAt=params.expiresAt,
            createdAt=now,
            modifiedAt=now,
        )
        with self._lock:
            self._coupons[coupon.id] = coupon
        return coupon.model_copy(deep=True)

    def update(self, coupon_id: str, params: CouponUpdate) -> Coupon:
        with self._lock:
            current = self._coupons.get(coupon_id)
            if current is None:
                raise CouponNotFound(coupon_id)
            updated = current.model_copy(update={
                "rule": params.rule.model_copy(deep=True),
                "description": params.description,
                "modifiedAt": now_utc(),
            })
            self._coupons[coupon_id] = updated
            return updated.model_copy(deep=True)

    def update_status(self, coupon_id: str, status: CouponStatus) -> None:
        with self._lock:
            current = self._coupons.get(coupon_id)
            if current is None:
                raise CouponNotFound(coupon_id)
            self._coupons[coupon_id] = current.model_copy(update={"status": status, "modifiedAt": now_utc()})

    def delete(self, coupon_id: str) -> None:
        with self._lock:
            if self._coupons.pop(coupon_id, None) is None:
                raise CouponNotFound(coupon_id)

    def clear(self) -> None:
        with self._lock:
            self._coupons.clear()
