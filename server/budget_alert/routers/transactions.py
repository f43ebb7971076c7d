from fastapi import APIRouter, Depends

from budget_alert.config import settings
from budget_alert.errors import ValidationError
from budget_alert.schemas.common import ApiResponse
from budget_alert.schemas.transaction import (
    TransactionIn,
    BulkTransactionIn,
    ProcessingResult,
    PreviewResult,
    BulkResult,
    RecalculateResult,
)
from budget_alert.services.transaction_service import TransactionService
from budget_alert.utils.deps import get_transaction_service
from budget_alert.utils.responses import success_response

router = APIRouter(prefix="/transactions", tags=["交易预算检查"])


@router.get("/health")
async def transactions_health():
    return success_response(
        {
            "service": "budget-alert-service",
            "status": "healthy",
            "version": settings.APP_VERSION,
        },
        "Transaction service is healthy",
    )


# ───── 单笔交易（主服务入账后调用） ─────

@router.post("", response_model=ApiResponse[ProcessingResult])
async def process_transaction(
    body: TransactionIn,
    service: TransactionService = Depends(get_transaction_service),
):
    result = await service.process_transaction(body)
    return success_response(result, "Transaction processed successfully")


# ───── 批量 ─────

@router.post("/bulk", response_model=ApiResponse[BulkResult])
async def process_bulk(
    body: BulkTransactionIn,
    service: TransactionService = Depends(get_transaction_service),
):
    if len(body.transactions) > settings.BULK_MAX_TRANSACTIONS:
        raise ValidationError(
            f"Maximum {settings.BULK_MAX_TRANSACTIONS} transactions per bulk operation"
        )
    result = await service.process_bulk(body.transactions)
    return success_response(result, "Bulk transactions processed successfully")


# ───── 预览（不写库） ─────

@router.post("/preview", response_model=ApiResponse[PreviewResult])
async def preview_transaction(
    body: TransactionIn,
    service: TransactionService = Depends(get_transaction_service),
):
    result = await service.preview_impact(body)
    return success_response(result, "Transaction impact preview generated")


# ───── 重算用户全部预算 ─────

@router.post("/recalculate/{user_id}", response_model=ApiResponse[RecalculateResult])
async def recalculate_user_budgets(
    user_id: str,
    service: TransactionService = Depends(get_transaction_service),
):
    result = await service.recalculate_user_budgets(user_id)
    return success_response(result, "User budgets recalculated successfully")
