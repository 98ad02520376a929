from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .logging_config import setup_logging
from .models import (
    AddRevenueRequest, RequestPayoutRequest, FailPayoutRequest,
    BreakdownEntry, PayoutRequest, PayoutResponse, ReconciliationReport,
    RevenueEntryResponse, RevenueOverview, RevenueStats,
)
from .service import (
    LedgerService, AccountNotFoundError, CampaignNotFoundError, PayoutNotFoundError,
    BelowMinimumThresholdError, InsufficientAvailableBalanceError, InvalidAmountError,
    InvalidSourceError, InvalidStateTransitionError,
)

router = APIRouter()


@lru_cache
def get_ledger_service() -> LedgerService:
    return LedgerService()


def _conflict(e: InvalidStateTransitionError) -> HTTPException:
    # Already logged by the payout manager
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/health", tags=["System"])
def health_check():
    return {"status": "healthy", "service": "creator-revenue-ledger"}


@router.post("/revenue", response_model=RevenueEntryResponse, status_code=status.HTTP_201_CREATED, tags=["Revenue"])
def add_revenue(
    request: AddRevenueRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> RevenueEntryResponse:
    try:
        entry = service.add_revenue(
            request.account_id, request.amount, request.source,
            request.campaign_id, request.idempotency_key,
        )
    except (InvalidAmountError, InvalidSourceError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except (AccountNotFoundError, CampaignNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return RevenueEntryResponse(entry=entry, message="Revenue recorded")


@router.get("/creators/{account_id}/revenue", response_model=RevenueOverview, tags=["Creators"])
def get_revenue(
    account_id: UUID,
    stats: bool = False,
    service: LedgerService = Depends(get_ledger_service),
) -> RevenueOverview:
    try:
        earnings = service.calculate_earnings(account_id)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    revenue_stats: Optional[RevenueStats] = service.get_revenue_stats(account_id) if stats else None
    return RevenueOverview(earnings=earnings, stats=revenue_stats)


@router.get("/creators/{account_id}/revenue/breakdown", response_model=list[BreakdownEntry], tags=["Creators"])
def get_revenue_breakdown(
    account_id: UUID,
    service: LedgerService = Depends(get_ledger_service),
) -> list[BreakdownEntry]:
    try:
        return service.get_revenue_breakdown(account_id)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/creators/{account_id}/revenue/stats", response_model=RevenueStats, tags=["Creators"])
def get_revenue_stats(
    account_id: UUID,
    service: LedgerService = Depends(get_ledger_service),
) -> RevenueStats:
    try:
        return service.get_revenue_stats(account_id)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/creators/{account_id}/payouts", response_model=list[PayoutRequest], tags=["Creators"])
def get_payout_history(
    account_id: UUID,
    service: LedgerService = Depends(get_ledger_service),
) -> list[PayoutRequest]:
    try:
        return service.get_payout_history(account_id)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post(
    "/creators/{account_id}/payouts",
    response_model=PayoutResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Creators"],
)
def request_payout(
    account_id: UUID,
    request: RequestPayoutRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> PayoutResponse:
    try:
        payout = service.request_payout(
            account_id, request.amount, request.bank_details, request.idempotency_key,
        )
    except (InvalidAmountError, BelowMinimumThresholdError, InsufficientAvailableBalanceError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except AccountNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return PayoutResponse(payout=payout, message="Payout requested")


@router.post("/creators/{account_id}/reconcile", response_model=ReconciliationReport, tags=["Creators"])
def reconcile_account(
    account_id: UUID,
    repair: bool = False,
    service: LedgerService = Depends(get_ledger_service),
) -> ReconciliationReport:
    try:
        return service.reconcile_account(account_id, repair)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/payouts/pending", response_model=list[PayoutRequest], tags=["Payouts"])
def get_pending_payouts(service: LedgerService = Depends(get_ledger_service)) -> list[PayoutRequest]:
    return service.get_pending_payout_requests()


@router.get("/payouts/{payout_id}", response_model=PayoutRequest, tags=["Payouts"])
def get_payout(payout_id: UUID, service: LedgerService = Depends(get_ledger_service)) -> PayoutRequest:
    try:
        return service.get_payout_request(payout_id)
    except PayoutNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Payout {payout_id} not found")


@router.post("/payouts/{payout_id}/start", response_model=PayoutResponse, tags=["Payouts"])
def start_payout(payout_id: UUID, service: LedgerService = Depends(get_ledger_service)) -> PayoutResponse:
    try:
        payout = service.start_payout_processing(payout_id)
    except PayoutNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Payout {payout_id} not found")
    except InvalidStateTransitionError as e:
        raise _conflict(e)
    return PayoutResponse(payout=payout, message="Payout processing started")


@router.post("/payouts/{payout_id}/complete", response_model=PayoutResponse, tags=["Payouts"])
def complete_payout(payout_id: UUID, service: LedgerService = Depends(get_ledger_service)) -> PayoutResponse:
    try:
        payout = service.complete_payout_request(payout_id)
    except PayoutNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Payout {payout_id} not found")
    except InvalidStateTransitionError as e:
        raise _conflict(e)
    return PayoutResponse(payout=payout, message="Payout completed")


@router.post("/payouts/{payout_id}/fail", response_model=PayoutResponse, tags=["Payouts"])
def fail_payout(
    payout_id: UUID,
    request: FailPayoutRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> PayoutResponse:
    try:
        payout = service.fail_payout_request(payout_id, request.reason)
    except PayoutNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Payout {payout_id} not found")
    except InvalidStateTransitionError as e:
        raise _conflict(e)
    return PayoutResponse(payout=payout, message="Payout marked as failed")


def create_app(root_path: str = "") -> FastAPI:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="Creator Revenue Ledger API",
        description="Creator earnings ledger with reserved-balance payout requests",
        version="1.0.0",
        root_path=root_path,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
