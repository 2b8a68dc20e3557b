"""
Pydantic schemas for API requests
"""

from typing import Any
from pydantic import BaseModel, Field


class TransferRequest(BaseModel):
    # Any JSON value; parse_amount rejects everything but positive amounts
    amount: Any = Field(..., description="Amount with at most two decimal places")
    to_upi_id: str = Field(..., description="UPI ID of the receiving account")


class RegisterRequest(BaseModel):
    username: str
    password: str
    confirm_password: str
    full_name: str
    role: str = "customer"


class LoginRequest(BaseModel):
    username: str
    password: str


class ChatRequest(BaseModel):
    message: str
