from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import List
from datetime import datetime

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.security import (
    security, verify_token, AuthenticationError,
    AuthorizationError, UserRole, TokenPayload
)
from ..models.doctor import Doctor
from ..models.patient import Patient

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> TokenPayload:
    """Extract and verify JWT token from Authorization header."""
    token = credentials.credentials

    # Verify token
    token_payload = verify_token(token)
    if not token_payload:
        raise AuthenticationError("Invalid or expired token")

    # Check if token is access token
    if token_payload.token_type != "access":
        raise AuthenticationError("Invalid token type")

    if not token_payload.sub or not token_payload.role:
        raise AuthenticationError("Invalid token payload")

    return token_payload

# Role-based access control dependencies
def require_role(allowed_roles: List[UserRole]):
    """Create a dependency that requires specific user roles."""
    async def role_checker(
        current_user: TokenPayload = Depends(get_current_user)
    ) -> TokenPayload:
        if current_user.role not in allowed_roles:
            raise AuthorizationError(
                f"Access denied. Required roles: {[role.value for role in allowed_roles]}"
            )
        return current_user

    return role_checker

# Specific role dependencies
async def get_admin_user(
    current_user: TokenPayload = Depends(require_role([UserRole.ADMIN]))
) -> TokenPayload:
    """Require admin role."""
    return current_user

async def get_lab_operator_user(
    current_user: TokenPayload = Depends(require_role([UserRole.LAB_OPERATOR, UserRole.ADMIN]))
) -> TokenPayload:
    """Require lab operator or admin role."""
    return current_user

async def get_current_patient(
    current_user: TokenPayload = Depends(require_role([UserRole.PATIENT])),
    db: Session = Depends(get_db)
) -> Patient:
    """Resolve the patient profile belonging to the token's email."""
    patient = db.query(Patient).filter(Patient.email == current_user.email).first()
    if not patient:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Patient profile not found. Please complete your profile first."
        )
    return patient

async def get_current_doctor(
    current_user: TokenPayload = Depends(require_role([UserRole.DOCTOR])),
    db: Session = Depends(get_db)
) -> Doctor:
    """Resolve the doctor record belonging to the token's email."""
    doctor = db.query(Doctor).filter(Doctor.email == current_user.email).first()
    if not doctor:
        raise AuthorizationError("No doctor record is linked to this account")
    return doctor

# Wall clock, overridable in tests
def get_now() -> datetime:
    """Current local time; scheduled slots are naive local datetimes."""
    return datetime.now()

# Rate limiting dependency
async def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Basic per-client rate limiting for booking endpoints."""
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:booking:{client_ip}"

    current_requests = redis_client.get(key)
    if current_requests is None:
        redis_client.setex(key, settings.BOOKING_RATE_WINDOW_SECONDS, 1)
    else:
        if int(current_requests) >= settings.BOOKING_RATE_LIMIT:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later."
            )
        redis_client.incr(key)
