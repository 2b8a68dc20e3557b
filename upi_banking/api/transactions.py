"""
Transaction history endpoints
"""

from fastapi import APIRouter, Depends

from .auth import BankingSystem, get_banking_system


router = APIRouter()


@router.get("/transactions/{user_id}")
async def list_transactions(
    user_id: int,
    system: BankingSystem = Depends(get_banking_system)
):
    """Get a user's transactions, oldest first"""
    return [t.to_public_dict() for t in system.queries.list_transactions(user_id)]
