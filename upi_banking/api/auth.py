"""
Authentication and authorization dependencies
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..system import BankingSystem
from ..users import User
from ..seed import seed_demo_data
from ..exceptions import AuthenticationError, AuthorizationError
from ..config import get_config


security = HTTPBearer(auto_error=False)

# Global banking system instance, built on first use
banking_system: Optional[BankingSystem] = None


# Dependency to get banking system
def get_banking_system() -> BankingSystem:
    global banking_system
    if banking_system is None:
        banking_system = BankingSystem(config=get_config())
        if banking_system.config.seed_demo_data:
            seed_demo_data(banking_system)
    return banking_system


def issue_token(user: User) -> str:
    """Sign a bearer token for the user"""
    config = get_config()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "role": user.role.value,
        "iat": now,
        "exp": now + timedelta(hours=config.jwt_expiry_hours),
    }
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    system: BankingSystem = Depends(get_banking_system)
) -> User:
    """Dependency that validates the JWT and returns the current user"""
    if not credentials:
        raise AuthenticationError("Not authenticated")

    config = get_config()
    try:
        payload = jwt.decode(credentials.credentials, config.jwt_secret, algorithms=[config.jwt_algorithm])
        user_id = int(payload["sub"])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise AuthenticationError("Invalid token")

    user = system.queries.get_user(user_id)
    if not user:
        raise AuthenticationError("Invalid token")
    return user


def require_manager(user: User = Depends(get_current_user)) -> User:
    """Dependency that only lets managers through"""
    if not user.is_manager:
        raise AuthorizationError("Manager access required")
    return user
