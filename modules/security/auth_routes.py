# modules/security/auth_routes.py
import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.settings import settings
from database.connection import get_db
from modules.common.errors import Conflict, ValidationError
from modules.security.model import User, UserRole
from modules.security.passwords import verify_password, hash_password, is_bcrypt_hash
from modules.security.schemas import SignupIn, LoginIn, LoginOut, UserOut
from modules.security.tokens import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/user", tags=["auth"])


@router.post("/signup", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def signup(payload: SignupIn, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    if db.query(User).filter(func.lower(User.email) == email).first():
        raise Conflict("email already exists")

    user = User(
        name=payload.name,
        email=email,
        password_hash=hash_password(payload.password),
        role=UserRole.CLIENT,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("email already exists")
    db.refresh(user)
    logger.info("User signed up: id=%s email=%s", user.id, user.email)
    return user


@router.post("/login", response_model=LoginOut)
def login(payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    user = db.query(User).filter(func.lower(User.email) == email).first()

    if not user or not verify_password(payload.password, user.password_hash):
        raise ValidationError("Email or password is wrong")

    # upgrade legacy bcrypt hash to the current scheme
    if is_bcrypt_hash(user.password_hash):
        user.password_hash = hash_password(payload.password)
        db.commit()
        db.refresh(user)

    token = create_access_token(user.id, user.email, user.role)
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
    )
    logger.info("User logged in: id=%s", user.id)
    return LoginOut(message="logged in successfully", user=UserOut.model_validate(user), access_token=token)


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return {"message": "logged out successfully"}
