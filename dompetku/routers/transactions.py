from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Path, status

from dompetku.db import dynamo
from dompetku.models.transaction import TransactionCreate, TransactionPublic, TransactionUpdate
from dompetku.routers.auth import get_current_user_id
from dompetku.utils.analyzer import CashflowAnalyzer

router = APIRouter()
cashflow_analyzer = CashflowAnalyzer()

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


@router.get("/", response_model=List[TransactionPublic])
def list_transactions(user_id: str = Depends(get_current_user_id)):
    return [TransactionPublic.from_item(item) for item in dynamo.list_transactions(user_id)]


@router.post("/", response_model=TransactionPublic, status_code=status.HTTP_201_CREATED)
def create_transaction(transaction: TransactionCreate, user_id: str = Depends(get_current_user_id)):
    item = dynamo.create_transaction(user_id, transaction)
    return TransactionPublic.from_item(item)


@router.get("/summary/{month}")
def monthly_summary(
    month: str = Path(..., pattern=MONTH_PATTERN),
    user_id: str = Depends(get_current_user_id),
) -> Dict:
    """
    month must follow YYYY-MM format. Example: 2025-03
    """
    transactions = dynamo.list_transactions(user_id)
    in_month = cashflow_analyzer.filter_by_month(transactions, month)
    summary = cashflow_analyzer.summarize_month(in_month, month)

    return {
        "month": month,
        "summary": summary.to_dict(),
        "transactions": [TransactionPublic.from_item(item).model_dump(mode="json") for item in in_month],
    }


@router.put("/{transaction_id}", response_model=TransactionPublic)
def update_transaction(
    transaction_id: str,
    transaction_update: TransactionUpdate,
    user_id: str = Depends(get_current_user_id),
):
    updated = dynamo.update_transaction(transaction_id, user_id, transaction_update)
    if not updated:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return TransactionPublic.from_item(updated)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(transaction_id: str, user_id: str = Depends(get_current_user_id)):
    deleted = dynamo.delete_transaction(transaction_id, user_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return None
