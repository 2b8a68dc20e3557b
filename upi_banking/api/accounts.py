"""
Payment account lookup endpoints
"""

from fastapi import APIRouter, Depends

from .auth import BankingSystem, get_banking_system
from ..exceptions import AccountNotFoundError


router = APIRouter()


@router.get("/accounts/upi/{upi_id}")
async def get_account_by_upi(
    upi_id: str,
    system: BankingSystem = Depends(get_banking_system)
):
    """Resolve a UPI ID to its account"""
    account = system.queries.find_account_by_upi(upi_id)
    if not account:
        raise AccountNotFoundError("Account not found")
    return account.to_public_dict()
