"""Authentication routes.

This module handles HTTP endpoints for user authentication and registration,
plus the bearer-token dependencies every other router relies on.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import pytz
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

import config
from core.dependencies import ClassManagerDep, UserManagerDep
from core.exceptions import ClassNotFoundError
from schemas.user import (
    CurrentUserResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    User,
)
from utils.user_manager import UserAlreadyExistsError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

# Missing credentials are reported as 401 by verify_token
security = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token.

    Args:
        data: Data to encode in the token.
        expires_delta: Optional expiration time delta.

    Returns:
        Encoded JWT token string.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(pytz.utc) + expires_delta
    else:
        expire = datetime.now(pytz.utc) + timedelta(minutes=config.JWT_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def verify_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """Verify JWT token from Authorization header.

    Args:
        credentials: HTTP Bearer token credentials.

    Returns:
        Decoded token payload.

    Raises:
        HTTPException: If the token is missing, invalid or expired.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = jwt.decode(
            credentials.credentials,
            config.JWT_SECRET_KEY,
            algorithms=[config.JWT_ALGORITHM],
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )
    if payload.get("sub") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )
    return payload


def get_current_user(
    user_manager: UserManagerDep,
    token_payload: dict = Depends(verify_token),
) -> User:
    """Get current authenticated user.

    The role comes from the stored user, not the token, so role changes
    apply to tokens issued before them.

    Raises:
        HTTPException: If the user no longer exists.
    """
    user = user_manager.get_user_by_id(token_payload["sub"])
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def require_role(user: User, *roles: str) -> None:
    """Raise 403 unless the user has one of ``roles``."""
    if user.role not in roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )


@router.post("/register", status_code=status.HTTP_201_CREATED, summary="Register")
def register(
    req: RegisterRequest,
    user_manager: UserManagerDep,
    class_manager: ClassManagerDep,
) -> dict:
    """Register a new user.

    Registration requirements:
    - Admin: requires ADMIN_TOKEN from the environment
    - Student: requires an existing class_id

    Returns:
        Dictionary with success message and user_id.
    """
    name = req.name.strip()
    if not name or not req.email or not req.password or not req.role:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name, email, password and role are required",
        )
    if req.role not in config.ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid role: {req.role}. Must be one of: {', '.join(config.ROLES)}.",
        )

    if req.role == "admin":
        if not config.ADMIN_TOKEN:
            logger.error("ADMIN_TOKEN is not set in environment variables")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Admin registration is not configured. ADMIN_TOKEN not set.",
            )
        if req.admin_token != config.ADMIN_TOKEN:
            logger.warning("Rejected admin registration for %s: bad admin token", req.email)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid admin token",
            )

    class_id = None
    if req.role == "student":
        if not req.class_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Class selection is required for students",
            )
        try:
            class_id = class_manager.get_class(req.class_id).class_id
        except ClassNotFoundError:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Selected class not found",
            )

    try:
        user = user_manager.create_user(
            name=name,
            email=req.email,
            password=req.password,
            role=req.role,
            class_id=class_id,
        )
    except UserAlreadyExistsError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already exists",
        )

    return {"message": "User registered successfully", "user_id": user.user_id}


@router.post("/login", response_model=LoginResponse, summary="Log in")
def login(req: LoginRequest, user_manager: UserManagerDep) -> LoginResponse:
    """Authenticate user and return an access token.

    Raises:
        HTTPException: 401 for an unknown email or a wrong password.
    """
    user = user_manager.authenticate(req.email, req.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    access_token = create_access_token(
        data={"sub": user.user_id, "email": user.email, "role": user.role}
    )
    logger.info("User logged in: %s", user.email)
    return LoginResponse(token=access_token, user=user.public_dict())


@router.post("/logout", summary="Log out")
def logout() -> dict:
    # Tokens are stateless; the client discards its copy
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=CurrentUserResponse, summary="Current user")
def get_current_user_info(current_user: User = Depends(get_current_user)) -> CurrentUserResponse:
    return CurrentUserResponse(user=current_user.public_dict())
