import logging
from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel, EmailStr
from passlib.context import CryptContext
from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
from typing import Optional
from sqlalchemy.orm import Session

# Local imports
from database.db_session import get_db
from database.models import User
from database.stores import UserStore
from errors import InvalidRequestError
from settings import JWT_SECRET, JWT_ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES

logger = logging.getLogger("api.auth")

# Password encryption setup
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Router for authentication endpoints
router = APIRouter(prefix="/api/auth", tags=["auth"])

# OAuth2 setup for FastAPI dependency injection
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/signin")

MIN_PASSWORD_LENGTH = 6


# ------------------------------
# Pydantic Schemas
# ------------------------------
class SignupIn(BaseModel):
    username: str
    email: EmailStr
    password: str


class SignInIn(BaseModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    username: str
    email: str


# ------------------------------
# Utility functions
# ------------------------------
def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)
    return encoded_jwt


def issue_token(user: User) -> Token:
    token = create_access_token({"sub": user.username, "user_id": user.id})
    return Token(access_token=token, username=user.username, email=user.email)


# ------------------------------
# Routes
# ------------------------------
@router.post("/signup", response_model=Token)
def signup(payload: SignupIn, db: Session = Depends(get_db)):
    username = payload.username.strip()
    email = str(payload.email).strip()
    if not username:
        raise InvalidRequestError("Username cannot be empty")
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise InvalidRequestError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    users = UserStore(db)
    if users.exists_username(username):
        raise InvalidRequestError(f"Username '{username}' is already taken")
    if users.exists_email(email):
        raise InvalidRequestError(f"Email '{email}' is already registered")

    user = users.add(User(username=username, email=email, hashed_password=get_password_hash(payload.password)))
    logger.info("Registered user %s", user.username)
    return issue_token(user)


@router.post("/signin", response_model=Token)
def signin(payload: SignInIn, db: Session = Depends(get_db)):
    users = UserStore(db)
    if payload.email:
        user = users.get_by_email(str(payload.email))
    elif payload.username:
        user = users.get_by_username(payload.username)
    else:
        user = None

    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid username or password")

    return issue_token(user)


# ------------------------------
# Current identity dependency
# ------------------------------
def get_current_username(token: str = Depends(oauth2_scheme)) -> str:
    """Identity of the caller as carried by the bearer token; services resolve it to a user."""
    credentials_exception = HTTPException(
        status_code=401,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        username: str = payload.get("sub")

        if username is None:
            raise credentials_exception

    except JWTError:
        raise credentials_exception

    return username
