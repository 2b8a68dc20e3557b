"""
Registration, login and session endpoints
"""

from fastapi import APIRouter, Depends, status

from .auth import BankingSystem, get_banking_system, get_current_user, issue_token
from .schemas import LoginRequest, RegisterRequest
from ..users import User, UserRole
from ..exceptions import AuthenticationError, ValidationError
from ..config import get_config
from ..logging_config import get_logger, log_action


router = APIRouter()
logger = get_logger("upi_banking.api")


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Register a new user and sign them in"""
    if request.password != request.confirm_password:
        raise ValidationError("Passwords do not match")
    if len(request.password) < get_config().password_min_length:
        raise ValidationError("Password is too short")
    try:
        role = UserRole(request.role.lower())
    except ValueError:
        raise ValidationError(f"Unknown role: {request.role}")

    user = system.user_ledger.create_user(
        username=request.username,
        password=request.password,
        full_name=request.full_name,
        role=role
    )
    log_action(logger, "info", "User registered", user_id=user.id, action="register", resource="auth")

    return {"user": user.to_public_dict(), "access_token": issue_token(user), "token_type": "bearer"}


@router.post("/login")
async def login(
    request: LoginRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Authenticate user and return JWT token"""
    user = system.user_ledger.authenticate(request.username, request.password)
    if not user:
        log_action(
            logger, "warning", "Authentication failed",
            action="login_failed", resource="auth",
            extra={"username": request.username}
        )
        raise AuthenticationError("Invalid username or password")

    log_action(logger, "info", "User authenticated successfully", user_id=user.id, action="login", resource="auth")
    return {"user": user.to_public_dict(), "access_token": issue_token(user), "token_type": "bearer"}


@router.get("/user")
async def get_user(user: User = Depends(get_current_user)):
    """Get the signed-in user"""
    return user.to_public_dict()
