from fastapi import APIRouter, Depends, HTTPException, Request

from app.dependencies import get_transfer_service
from app.middlewares.rbac import get_current_claims
from app.schemas.transaction import (
    FraudReportRequest, FraudReportResult, TransactionListResponse, TransactionRead,
    TransferRequest, TransferResult,
)
from app.services.rate_limit import limiter, TRANSFER_RATE_LIMIT
from app.services.transfer_service import TransferService

router = APIRouter(prefix="/transaction", tags=["transaction"])


def _is_party(txn: TransactionRead, claims: dict) -> bool:
    uid = claims.get("uid")
    return claims.get("role") == "admin" or uid in (txn.sender.uid, txn.receiver.uid)


@router.post("/", response_model=TransferResult, response_model_exclude_none=True)
@limiter.limit(TRANSFER_RATE_LIMIT)
async def send_money(request: Request, data: TransferRequest, claims: dict = Depends(get_current_claims), service: TransferService = Depends(get_transfer_service)):
    # Sender is always the authenticated caller
    return await service.send_money(
        claims["uid"],
        data.receiver_account_number,
        data.amount,
        data.description,
        bypass_warning=data.bypass_warning,
    )

@router.get("/", response_model=TransactionListResponse)
async def list_transactions(claims: dict = Depends(get_current_claims), service: TransferService = Depends(get_transfer_service)):
    transactions = await service.get_transactions(claims["uid"])
    return TransactionListResponse(transactions=transactions)

@router.get("/{transaction_id}", response_model=TransactionRead)
async def get_transaction(transaction_id: str, claims: dict = Depends(get_current_claims), service: TransferService = Depends(get_transfer_service)):
    txn = await service.get_transaction(transaction_id)
    if not txn:
        raise HTTPException(status_code=404, detail="Transaction not found.")
    if not _is_party(txn, claims):
        raise HTTPException(status_code=403, detail="Forbidden")
    return txn

@router.post("/{transaction_id}/report", response_model=FraudReportResult, response_model_exclude_none=True)
async def report_fraud(transaction_id: str, data: FraudReportRequest, claims: dict = Depends(get_current_claims), service: TransferService = Depends(get_transfer_service)):
    txn = await service.get_transaction(transaction_id)
    # Unknown ids fall through so the caller gets the standard not-found result
    if txn is not None and not _is_party(txn, claims):
        raise HTTPException(status_code=403, detail="Forbidden")
    return await service.report_transaction_as_fraud(transaction_id, data.user_report)
