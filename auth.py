# backend/auth.py

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import models      # absolute import
import schemas     # absolute import
from config import settings
from db import get_db
from errors import AuthError, ConfigError, ConflictError, ValidationError

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"

# ─── Password hashing ───────────────────────────────────────────────────────────
pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds
)

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"]
)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def _secret() -> str:
    if not settings.jwt_secret:
        raise ConfigError("JWT_SECRET is not set in .env")
    return settings.jwt_secret

def create_access_token(data: dict, expires_delta: timedelta = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, _secret(), algorithm=settings.jwt_algorithm)

def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()

def _issue(user: models.User) -> schemas.AuthResponse:
    token = create_access_token(data={"id": user.id, "email": user.email})
    return schemas.AuthResponse(user=schemas.UserOut.model_validate(user), token=token)

# ─── Service functions ─────────────────────────────────────────────────────────
def register(db: Session, name: Optional[str], email: Optional[str], password: Optional[str]) -> schemas.AuthResponse:
    name = (name or "").strip()
    email = normalize_email(email)
    if not name or not email or not password:
        raise ValidationError("All fields are required")

    existing = db.query(models.User).filter(models.User.email == email).first()
    if existing:
        raise ConflictError("Email already in use")

    new_user = models.User(name=name, email=email, hashed_password=get_password_hash(password))
    db.add(new_user)
    try:
        db.commit()
    except IntegrityError:
        # another request inserted the same email between the check and the commit
        db.rollback()
        raise ConflictError("Email already in use")
    db.refresh(new_user)
    logger.info("Registered user id=%s", new_user.id)
    return _issue(new_user)

def login(db: Session, email: Optional[str], password: Optional[str]) -> schemas.AuthResponse:
    user = None
    email = normalize_email(email)
    if email:
        user = db.query(models.User).filter(models.User.email == email).first()
    # unknown email and wrong password get the same answer
    if not user or not password or not verify_password(password, user.hashed_password):
        raise AuthError(INVALID_CREDENTIALS, status_code=400)
    return _issue(user)

def authenticate(token: Optional[str]) -> schemas.TokenData:
    if not token:
        raise AuthError("No token, authorization denied")
    try:
        payload = jwt.decode(token, _secret(), algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise AuthError("Token is not valid")

    user_id = payload.get("id")
    email = payload.get("email")
    if user_id is None or email is None or "exp" not in payload:
        raise AuthError("Token is not valid")
    return schemas.TokenData(user_id=user_id, email=email)

# ─── Register endpoint ─────────────────────────────────────────────────────────
@router.post("/register", response_model=schemas.AuthResponse)
def register_route(body: schemas.RegisterRequest, db: Session = Depends(get_db)):
    return register(db, body.name, body.email, body.password)

# ─── Login endpoint ────────────────────────────────────────────────────────────
@router.post("/login", response_model=schemas.AuthResponse)
def login_route(body: schemas.LoginRequest, db: Session = Depends(get_db)):
    return login(db, body.email, body.password)

# ─── Dependency: get_current_user ───────────────────────────────────────────────
def get_current_user(authorization: Optional[str] = Header(None)) -> schemas.TokenData:
    token = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer "):].strip()
    return authenticate(token)
