"""
Discount rule evaluation.

`evaluate` previews which coupons would apply to a cart without touching it;
`apply_coupon` applies a single coupon to the cart in place and returns the
resulting totals. Money is plain float arithmetic with no rounding.
"""
from datetime import datetime
from typing import Iterable, List, Optional

from expiry import is_usable, now_utc
from logger import get_logger
from models import (
    ApplicableCoupon,
    ApplyResult,
    BxGyRule,
    Cart,
    CartWiseRule,
    Coupon,
    CouponType,
    ProductWiseRule,
)

logger = get_logger("engine")


# ================================
# ERRORS
# ================================

class CouponError(Exception):
    pass


class NotApplicable(CouponError):
    """The coupon is expired or inactive at the time of the request."""


class InvalidRule(CouponError):
    """The coupon rule cannot be evaluated (e.g. a bxgy rule with nothing to buy)."""


# ================================
# HELPERS
# ================================

def cart_total(cart: Cart) -> float:
    return sum(item.quantity * item.unitPrice for item in cart.items)


def bxgy_repetitions(cart: Cart, rule: BxGyRule) -> int:
    if not rule.buyProducts:
        raise InvalidRule("bxgy coupon has no buy products")

    total_buy_quantity = 0
    for buy in rule.buyProducts:
        for item in cart.items:
            if item.productId == buy.productId:
                total_buy_quantity += item.quantity

    repetitions = total_buy_quantity // rule.buyProducts[0].quantity
    return max(0, min(repetitions, rule.repetitionLimit))


def _of_type(coupons: Iterable[Coupon], coupon_type: CouponType) -> List[Coupon]:
    return [c for c in coupons if c.type == coupon_type]


# ================================
# APPLICABILITY
# ================================

def _cart_wise_preview(cart: Cart, coupons: List[Coupon], now: datetime) -> List[ApplicableCoupon]:
    # A cart holds at most one cart-wise coupon: only the first candidate counts,
    # even when it is not usable and later ones are.
    if not coupons:
        return []
    coupon = coupons[0]
    if not is_usable(coupon, now):
        return []

    rule: CartWiseRule = coupon.rule
    total = cart_total(cart)
    if total < rule.threshold:
        return []

    return [ApplicableCoupon(
        couponId=coupon.id,
        type=coupon.type,
        discountAmount=total * rule.discountPercent / 100,
    )]


def _product_wise_preview(cart: Cart, coupons: List[Coupon], now: datetime) -> List[ApplicableCoupon]:
    result = []
    for coupon in coupons:
        if not is_usable(coupon, now):
            continue
        rule: ProductWiseRule = coupon.rule
        for item in cart.items:
            if item.productId == rule.productId:
                result.append(ApplicableCoupon(
                    couponId=coupon.id,
                    type=coupon.type,
                    discountAmount=item.quantity * item.unitPrice * rule.discountPercent / 100,
                ))
    return result


def _bxgy_preview(cart: Cart, coupons: List[Coupon], now: datetime) -> List[ApplicableCoupon]:
    result = []
    for coupon in coupons:
        if not is_usable(coupon, now):
            continue
        rule: BxGyRule = coupon.rule
        try:
            repetitions = bxgy_repetitions(cart, rule)
        except InvalidRule as e:
            logger.warning("Skipping coupon %s: %s", coupon.id, e)
            continue

        if repetitions == 0:
            continue

        discount = 0.0
        for _ in range(repetitions):
            for get in rule.getProducts:
                for item in cart.items:
                    if item.productId == get.productId:
                        discount += get.quantity * item.unitPrice

        result.append(ApplicableCoupon(couponId=coupon.id, type=coupon.type, discountAmount=discount))
    return result


def evaluate(cart: Cart, coupons: Iterable[Coupon], now: Optional[datetime] = None) -> List[ApplicableCoupon]:
    """
    List the coupons that would apply to `cart` and the discount each one gives.

    The cart is only read. Results come back cart-wise first, then product-wise
    (coupon order, then item order), then bxgy (coupon order).
    """
    if now is None:
        now = now_utc()
    coupons = list(coupons)

    return (
        _cart_wise_preview(cart, _of_type(coupons, CouponType.CART_WISE), now)
        + _product_wise_preview(cart, _of_type(coupons, CouponType.PRODUCT_WISE), now)
        + _bxgy_preview(cart, _of_type(coupons, CouponType.BXGY), now)
    )


# ================================
# APPLY
# ================================

def apply_coupon(cart: Cart, coupon: Coupon, now: Optional[datetime] = None) -> ApplyResult:
    """
    Apply `coupon` to `cart`, updating its items in place.

    Raises NotApplicable for an expired coupon and InvalidRule for a bxgy rule
    without buy products. Both are raised before any item is modified. A coupon
    that matches nothing in the cart yields a zero discount.
    """
    if now is None:
        now = now_utc()
    if not is_usable(coupon, now):
        raise NotApplicable(f"Coupon {coupon.id} has expired")

    rule = coupon.rule
    # taken from the cart as submitted, before bxgy free units are added
    subtotal = cart_total(cart)
    total_discount = 0.0

    if isinstance(rule, CartWiseRule):
        if subtotal >= rule.threshold:
            total_discount = subtotal * rule.discountPercent / 100

    elif isinstance(rule, ProductWiseRule):
        for item in cart.items:
            if item.productId != rule.productId:
                continue
            item_discount = item.quantity * item.unitPrice * rule.discountPercent / 100
            item.totalDiscount = item_discount
            if item.quantity > 0:
                item.unitPrice -= item_discount / item.quantity
            total_discount += item_discount

    elif isinstance(rule, BxGyRule):
        repetitions = bxgy_repetitions(cart, rule)
        if repetitions > 0:
            for get in rule.getProducts:
                for item in cart.items:
                    if item.productId != get.productId:
                        continue
                    free_quantity = get.quantity * repetitions
                    item.quantity += free_quantity
                    item.totalDiscount = free_quantity * item.unitPrice
                    total_discount += free_quantity * item.unitPrice

    final_price = subtotal - total_discount
    logger.debug("Applied coupon %s (%s): discount=%s final=%s", coupon.id, coupon.type.value, total_discount, final_price)

    return ApplyResult(
        items=cart.items,
        totalDiscount=total_discount,
        finalPrice=final_price,
        totalPrice=final_price + total_discount,
    )
