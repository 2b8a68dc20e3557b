"""
Fraud alert endpoints
"""

from fastapi import APIRouter, Depends

from .auth import BankingSystem, get_banking_system, require_manager
from ..users import User


router = APIRouter()


@router.get("/fraud-alerts")
async def list_active_fraud_alerts(
    manager: User = Depends(require_manager),
    system: BankingSystem = Depends(get_banking_system)
):
    """Unresolved alerts across all customers"""
    return [a.to_public_dict() for a in system.queries.list_active_fraud_alerts()]


@router.get("/fraud-alerts/{user_id}")
async def list_fraud_alerts(
    user_id: int,
    system: BankingSystem = Depends(get_banking_system)
):
    return [a.to_public_dict() for a in system.queries.list_fraud_alerts(user_id)]
