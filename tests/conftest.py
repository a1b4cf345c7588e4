import os

# The periodic expiry job is exercised directly in test_scheduler.py
os.environ.setdefault("COUPON_EXPIRY_JOB_ENABLED", "false")

from datetime import datetime, timedelta, timezone

import pytest

from models import (
    BxGyRule,
    Cart,
    CartItem,
    CartWiseRule,
    Coupon,
    CouponStatus,
    ProductQuantity,
    ProductWiseRule,
)

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_coupon(rule, coupon_id="c1", status=CouponStatus.ACTIVE, expires_in=timedelta(days=1)):
    return Coupon(
        id=coupon_id,
        rule=rule,
        status=status,
        expiresAt=NOW + expires_in,
        createdAt=NOW - timedelta(days=1),
        modifiedAt=NOW - timedelta(days=1),
    )


def make_cart(*items):
    """Build a cart from (productId, quantity, unitPrice) tuples."""
    return Cart(items=[CartItem(productId=p, quantity=q, unitPrice=u) for p, q, u in items])


def bxgy(buy, get, limit=1):
    return BxGyRule(
        buyProducts=[ProductQuantity(productId=p, quantity=q) for p, q in buy],
        getProducts=[ProductQuantity(productId=p, quantity=q) for p, q in get],
        repetitionLimit=limit,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def cart_wise_coupon():
    return make_coupon(CartWiseRule(threshold=200, discountPercent=10), coupon_id="cart10")


@pytest.fixture
def product_wise_coupon():
    return make_coupon(ProductWiseRule(productId=5, discountPercent=20), coupon_id="prod5")
