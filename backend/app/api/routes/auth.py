"""Authentication routes."""

import logging

from fastapi import APIRouter, Request, status

from app.core.exceptions import Conflict, NotAuthenticated
from app.core.rate_limit import limiter
from app.core.rbac import CurrentUser
from app.core.security import create_access_token, get_password_hash, verify_password
from app.db.session import DbSession
from app.models.user import User
from app.schemas.auth import LoginRequest, RegisterRequest, Token, UserResponse
from app.services import audit_service

logger = logging.getLogger("auth")

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def register(request: Request, user_create: RegisterRequest, db: DbSession):
    """Register a new user account. A role is chosen afterwards via /roles/me."""
    client_ip = request.client.host if request.client else "unknown"
    email = user_create.email.lower()

    if db.query(User).filter(User.email == email).first():
        raise Conflict("Email already registered")

    user = User(
        email=email,
        password_hash=get_password_hash(user_create.password),
        name=user_create.name,
        is_active=True,
    )
    db.add(user)
    db.flush()
    audit_service.log_action(
        action="REGISTER_USER",
        entity_type="user",
        entity_id=user.id,
        user_id=user.id,
        new_values={"email": user.email, "name": user.name},
        ip_address=client_ip,
        db=db,
    )
    db.commit()
    db.refresh(user)
    logger.info(f"New user registered: {user.email} (ID: {user.id}) from IP: {client_ip}")
    return user


@router.post("/login", response_model=Token)
@limiter.limit("5/minute")
def login(request: Request, login_request: LoginRequest, db: DbSession):
    """Authenticate user and return JWT token."""
    client_ip = request.client.host if request.client else "unknown"
    user = db.query(User).filter(User.email == login_request.email.lower()).first()

    if not user or not verify_password(login_request.password, user.password_hash):
        logger.warning(f"Failed login attempt for email: {login_request.email} from IP: {client_ip}")
        raise NotAuthenticated("Invalid email or password")
    if not user.is_active:
        logger.warning(f"Login attempt for inactive user: {user.email} (ID: {user.id}) from IP: {client_ip}")
        raise NotAuthenticated("User account is inactive")

    logger.info(f"Successful login: {user.email} (ID: {user.id}) from IP: {client_ip}")
    token = create_access_token(data={"sub": str(user.id), "email": user.email})
    return Token(access_token=token)


@router.get("/me", response_model=UserResponse)
@limiter.limit("60/minute")
def get_current_user_info(request: Request, current_user: CurrentUser):
    """Get current authenticated user info."""
    return current_user.user
