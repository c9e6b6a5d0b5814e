from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .logging import setup_logging
from .logic import apply_coupon, coupon_status, evaluate
from .models import (
    CouponStatus,
    CreateCouponRequest,
    MessageResponse,
    StatusCategory,
    VerifyResponse,
)
from .storage import CouponRegistry, DuplicateCouponError

STATUS_CODES = {
    StatusCategory.OK: 200,
    StatusCategory.NOT_FOUND: 404,
    StatusCategory.REJECTED: 400,
}


# ---------------------------
# Dependencies
# ---------------------------

def get_clock() -> datetime:
    return datetime.now(timezone.utc)


def get_registry(request: Request) -> CouponRegistry:
    return request.app.state.registry


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


# ---------------------------
# FastAPI App & Routes
# ---------------------------

def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[CouponRegistry] = None,
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Coupon Quota Service")
    app.state.settings = settings
    app.state.registry = registry or CouponRegistry(settings)

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    @app.post("/coupons", response_model=MessageResponse, status_code=201)
    def create_coupon(
        payload: CreateCouponRequest,
        registry: CouponRegistry = Depends(get_registry),
    ):
        try:
            registry.create_coupon(payload.code)
        except DuplicateCouponError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return MessageResponse(message="Coupon added successfully")

    @app.get("/coupons", response_model=List[CouponStatus])
    def list_coupons(registry: CouponRegistry = Depends(get_registry)):
        statuses = []
        for coupon in registry.list_coupons():
            with coupon.lock:
                statuses.append(coupon_status(coupon))
        return statuses

    @app.get("/coupons/{code}", response_model=CouponStatus)
    def get_coupon(code: str, registry: CouponRegistry = Depends(get_registry)):
        coupon = registry.lookup(code)
        if coupon is None:
            raise HTTPException(status_code=404, detail="Coupon not found")
        with coupon.lock:
            return coupon_status(coupon)

    @app.get("/coupons/{code}/verify", response_model=VerifyResponse)
    def verify_coupon(
        code: str,
        userId: Optional[str] = None,
        registry: CouponRegistry = Depends(get_registry),
        now: datetime = Depends(get_clock),
    ):
        result = evaluate(registry, code, userId or None, now)
        body = VerifyResponse(isValid=result.is_valid, outcome=result.outcome, message=result.message)
        return JSONResponse(
            status_code=STATUS_CODES[result.statusCategory],
            content=body.model_dump(mode="json"),
        )

    @app.post("/coupons/{code}/apply", response_model=MessageResponse)
    def apply(
        code: str,
        userId: Optional[str] = None,
        registry: CouponRegistry = Depends(get_registry),
        settings: Settings = Depends(get_app_settings),
        now: datetime = Depends(get_clock),
    ):
        result = apply_coupon(registry, code, userId or None, now, settings.bucket_retention_weeks)
        if not result.is_valid:
            raise HTTPException(status_code=STATUS_CODES[result.statusCategory], detail=result.message)
        return MessageResponse(message="Coupon applied successfully")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    setup_logging(level=settings.log_level)
    uvicorn.run(
        "coupon_quota.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
    )
