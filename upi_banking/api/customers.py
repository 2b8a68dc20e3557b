"""
Manager views over customers
"""

from fastapi import APIRouter, Depends

from .auth import BankingSystem, get_banking_system, require_manager
from ..users import User


router = APIRouter()


@router.get("/customers")
async def list_customers(
    manager: User = Depends(require_manager),
    system: BankingSystem = Depends(get_banking_system)
):
    """List all customers in registration order"""
    return [c.to_public_dict() for c in system.queries.list_customers()]
