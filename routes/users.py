from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional
from models.user import User, UserRole
from utils.auth import get_current_active_user, get_optional_user
from utils.database import get_db, transaction
from schemas.user import UserCreate, UserResponse, Token, LoginRequest
from utils.auth import (
    verify_password,
    get_password_hash,
    create_access_token,
)
import logging


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["users"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user: UserCreate,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    logger.info(f"Attempting to register user with email: {user.email}")

    admin_exists = db.query(User).filter(User.role == UserRole.ADMIN).first()

    if not admin_exists:
        # First account bootstraps the system and is always an admin
        if user.role != UserRole.ADMIN:
            logger.info(f"Overriding role to ADMIN for first user: {user.email}")
            user.role = UserRole.ADMIN
    elif not current_user or current_user.role != UserRole.ADMIN:
        logger.warning(f"Unauthorized registration attempt by user: {current_user.email if current_user else 'None'}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only an admin can register new users"
        )

    if db.query(User).filter(User.email == user.email).first():
        logger.warning(f"Registration failed: Email already registered: {user.email}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    with transaction(db, "register user"):
        db_user = User(
            name=user.name,
            email=user.email,
            hashed_password=get_password_hash(user.password),
            role=user.role,
            phone=user.phone,
            is_active=True,
        )
        db.add(db_user)
    db.refresh(db_user)
    logger.info(f"User registered successfully: {db_user.email} (ID: {db_user.id}, Role: {db_user.role.value})")
    return db_user


@router.post("/login", response_model=Token)
async def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == login_data.email).first()
    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning(f"Failed login for {login_data.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    access_token = create_access_token(data={"sub": user.email, "role": user.role.value})
    logger.info(f"User {user.email} logged in")
    return {"access_token": access_token, "token_type": "bearer", "user": user}


@router.get("/me", response_model=UserResponse)
async def read_current_user(current_user: User = Depends(get_current_active_user)):
    return current_user
