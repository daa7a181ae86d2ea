"""Coupon API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from coupon_manager.core.config import settings
from coupon_manager.core.database import get_db
from coupon_manager.core.errors import CouponError, CouponValidationError
from coupon_manager.core.idempotency import (
    check_idempotency,
    record_idempotency_response,
    release_idempotency_key,
)
from coupon_manager.models.coupon import CouponStatus, CouponType
from coupon_manager.schemas.coupon import (
    CouponCreate,
    CouponListResponse,
    CouponResponse,
    CouponStatsResponse,
    CouponUpdate,
    UseCouponRequest,
)
from coupon_manager.services.coupon_service import CouponFilters, CouponService

router = APIRouter()


def _http_error(error: CouponError) -> HTTPException:
    if isinstance(error, CouponValidationError) and error.details:
        return HTTPException(
            status_code=error.status_code,
            detail={"error": str(error), "details": error.details},
        )
    return HTTPException(status_code=error.status_code, detail=str(error))


@router.get(
    "",
    response_model=CouponListResponse,
    summary="List coupons",
    responses={400: {"description": "Invalid filter"}},
)
async def list_coupons(
    response: Response,
    search: str | None = Query(default=None, description="Substring of code, company, notes"),
    company: str | None = Query(default=None),
    category: str | None = Query(default=None),
    type: CouponType | None = Query(default=None),
    status: CouponStatus | None = Query(default=None),
    limit: int = Query(default=settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> CouponListResponse:
    """List coupons with optional filters, newest first."""
    filters = CouponFilters(
        company=company or None,
        category=category or None,
        type=type,
        status=status,
        search=search.strip() if search and search.strip() else None,
    )
    page = CouponService(db).list_coupons(filters, limit=limit, offset=offset)
    response.headers["X-Total-Count"] = str(page.total)
    return CouponListResponse(
        coupons=page.coupons, total=page.total, limit=page.limit, offset=page.offset
    )


@router.get("/recent", response_model=list[CouponResponse], summary="Recently added coupons")
async def recent_coupons(db: Session = Depends(get_db)) -> list[CouponResponse]:
    """The most recently added coupons, newest first."""
    return CouponService(db).recent_coupons()


@router.get(
    "/stats/summary",
    response_model=CouponStatsResponse,
    summary="Coupon statistics",
)
async def stats_summary(db: Session = Depends(get_db)) -> CouponStatsResponse:
    """Summary counts and total remaining value over all coupons."""
    stats = CouponService(db).stats_summary()
    return CouponStatsResponse.model_validate(stats)


@router.get(
    "/{coupon_id}",
    response_model=CouponResponse,
    summary="Get coupon",
    responses={404: {"description": "Coupon not found"}},
)
async def get_coupon(coupon_id: str, db: Session = Depends(get_db)) -> CouponResponse:
    """Get a coupon with its derived status and usage history."""
    try:
        return CouponService(db).get_coupon(coupon_id)
    except CouponError as e:
        raise _http_error(e) from None


@router.post(
    "",
    response_model=CouponResponse,
    status_code=201,
    summary="Create coupon",
    responses={400: {"description": "Missing required fields or duplicate code"}},
)
async def create_coupon(data: CouponCreate, db: Session = Depends(get_db)) -> CouponResponse:
    """Create a new money or product coupon."""
    try:
        return CouponService(db).create_coupon(data)
    except CouponError as e:
        raise _http_error(e) from None


@router.put(
    "/{coupon_id}",
    response_model=CouponResponse,
    summary="Update coupon",
    responses={
        400: {"description": "Validation error"},
        404: {"description": "Coupon not found"},
        409: {"description": "Concurrent modification"},
    },
)
async def update_coupon(
    coupon_id: str,
    data: CouponUpdate,
    db: Session = Depends(get_db),
) -> CouponResponse:
    """Update coupon fields. Balance and used flag are preserved."""
    try:
        return CouponService(db).update_coupon(coupon_id, data)
    except CouponError as e:
        raise _http_error(e) from None


@router.put(
    "/{coupon_id}/use",
    response_model=CouponResponse,
    summary="Use coupon",
    responses={
        400: {"description": "Amount exceeds balance or coupon already used"},
        404: {"description": "Coupon not found"},
        409: {"description": "Concurrent modification"},
    },
)
async def use_coupon(
    coupon_id: str,
    request: Request,
    data: UseCouponRequest | None = None,
    db: Session = Depends(get_db),
) -> CouponResponse | JSONResponse:
    """Use a coupon, fully or partially.

    Send an ``Idempotency-Key`` header to make retries safe: a repeated key
    replays the first response instead of debiting the coupon again.
    """
    idempotency = check_idempotency(request, db)
    if isinstance(idempotency, JSONResponse):
        return idempotency

    data = data or UseCouponRequest()
    try:
        coupon = CouponService(db).use_coupon(coupon_id, amount=data.amount, notes=data.notes)
    except CouponError as e:
        if idempotency is not None:
            release_idempotency_key(db, idempotency.key)
        raise _http_error(e) from None

    if idempotency is not None:
        record_idempotency_response(
            db, idempotency.key, 200, coupon.model_dump(mode="json")
        )
    return coupon


@router.delete(
    "/{coupon_id}",
    status_code=204,
    summary="Delete coupon",
    responses={404: {"description": "Coupon not found"}},
)
async def delete_coupon(coupon_id: str, db: Session = Depends(get_db)) -> Response:
    """Permanently delete a coupon and its usage history."""
    try:
        CouponService(db).delete_coupon(coupon_id)
    except CouponError as e:
        raise _http_error(e) from None
    return Response(status_code=204)
