import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException

from config import settings
from engine import InvalidRule, NotApplicable, apply_coupon, evaluate
from expiry import now_utc
from logger import get_logger
from models import BxGyRule, CartRequest, CartWiseRule, CouponCreate, CouponType, CouponUpdate, ProductWiseRule
from scheduler import CouponExpiryUpdater, run_expiry_loop
from storage import CouponNotFound, CouponStore

logger = get_logger("api")


# ================================
# STORAGE & BACKGROUND JOB
# ================================

store = CouponStore()
expiry_updater = CouponExpiryUpdater(store)


@asynccontextmanager
async def lifespan(app: FastAPI):
    task = None
    if settings.expiry_job_enabled:
        task = asyncio.create_task(
            run_expiry_loop(expiry_updater, settings.expiry_check_interval_seconds)
        )
    else:
        logger.info("Coupon expiry job disabled (COUPON_EXPIRY_JOB_ENABLED=false)")

    yield

    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


app = FastAPI(title="Coupon Management System", lifespan=lifespan)


# ================================
# HELPER FUNCTIONS
# ================================

def validate_rule(rule) -> None:
    if isinstance(rule, CartWiseRule):
        if rule.threshold == 0 or rule.discountPercent == 0:
            raise HTTPException(400, "For cart-wise type, both threshold and discountPercent must be provided")

    elif isinstance(rule, ProductWiseRule):
        if rule.productId == 0 or rule.discountPercent == 0:
            raise HTTPException(400, "For product-wise type, both productId and discountPercent must be provided")

    elif isinstance(rule, BxGyRule):
        if not rule.buyProducts or not rule.getProducts:
            raise HTTPException(400, "For bxgy type, buyProducts and getProducts must be provided")


def get_coupon_or_404(coupon_id: str):
    try:
        return store.get_by_id(coupon_id)
    except CouponNotFound:
        raise HTTPException(404, "Coupon not found")


# ================================
# ROUTES
# ================================

@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.post("/coupons", status_code=201)
def create_coupon(params: CouponCreate):
    if params.expiresAt <= now_utc():
        raise HTTPException(400, "expiresAt must be a future date")
    validate_rule(params.rule)

    coupon = store.create(params)
    logger.info("Created %s coupon %s", coupon.type.value, coupon.id)
    return {"coupon": coupon}


@app.get("/coupons")
def list_coupons(type: Optional[CouponType] = None):
    if type is None:
        return {"coupons": store.get_all()}
    return {"coupons": store.get_by_type(type)}


@app.get("/coupons/{coupon_id}")
def get_coupon(coupon_id: str):
    return {"coupon": get_coupon_or_404(coupon_id)}


@app.put("/coupons/{coupon_id}")
def update_coupon(coupon_id: str, params: CouponUpdate):
    coupon = get_coupon_or_404(coupon_id)

    if params.rule.type != coupon.rule.type:
        raise HTTPException(400, f"Coupon type cannot change from '{coupon.rule.type}' to '{params.rule.type}'")
    validate_rule(params.rule)

    try:
        store.update(coupon_id, params)
    except CouponNotFound:
        # deleted between the lookup above and the write
        raise HTTPException(404, "Coupon not found")

    logger.info("Updated coupon %s", coupon_id)
    return {"message": "Coupon updated successfully"}


@app.delete("/coupons/{coupon_id}")
def delete_coupon(coupon_id: str):
    try:
        store.delete(coupon_id)
    except CouponNotFound:
        raise HTTPException(404, "Coupon not found")

    logger.info("Deleted coupon %s", coupon_id)
    return {"message": "Coupon deleted successfully"}


@app.post("/applicable-coupons")
def applicable_coupons(req: CartRequest):
    applicable = evaluate(req.cart, store.get_all(), now=now_utc())
    return {"applicable_coupons": applicable}


@app.post("/apply-coupon/{coupon_id}")
def apply_coupon_to_cart(coupon_id: str, req: CartRequest):
    coupon = get_coupon_or_404(coupon_id)

    try:
        result = apply_coupon(req.cart, coupon, now=now_utc())
    except NotApplicable:
        raise HTTPException(400, "Coupon has expired")
    except InvalidRule as e:
        raise HTTPException(400, str(e))

    return {
        "updated_cart": {
            "items": result.items,
            "total_price": result.totalPrice,
            "total_discount": result.totalDiscount,
            "final_price": result.finalPrice,
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=False)
