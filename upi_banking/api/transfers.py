"""
Money transfer endpoints
"""

from fastapi import APIRouter, Depends

from .auth import BankingSystem, get_banking_system, get_current_user
from .schemas import TransferRequest
from ..users import User


router = APIRouter()


@router.post("/transfer")
async def transfer_money(
    request: TransferRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Transfer money from the current user to a UPI ID"""
    receipt = system.transfers.transfer_money(user.id, request.amount, request.to_upi_id)
    return {"success": True, **receipt.to_dict()}
