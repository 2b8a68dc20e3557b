"""
Chat assistant endpoint
"""

from fastapi import APIRouter, Depends

from .auth import BankingSystem, get_banking_system, get_current_user
from .schemas import ChatRequest
from ..users import User


router = APIRouter()


@router.post("/chat")
async def chat(
    request: ChatRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Send one message to the assistant"""
    reply = system.assistant.handle_message(user.id, request.message)
    return {"reply": reply.reply, "state": reply.state.value}
