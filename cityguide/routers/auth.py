from __future__ import annotations

import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import select
from sqlalchemy.orm import Session

from cityguide.core.config import settings
from cityguide.core.rate_limit import rate_limit
from cityguide.core.security import (
    create_access_token,
    generate_otp,
    get_password_hash,
    hash_otp,
    verify_otp,
    verify_password,
)
from cityguide.db.session import get_db
from cityguide.models.users import UserAuth
from cityguide.schemas.auth import (
    LoginRequest,
    OtpSentResponse,
    RegisterRequest,
    ResendOtpRequest,
    TokenResponse,
    UserMeResponse,
    VerifyOtpRequest,
)
from cityguide.services.mailer import MailError, send_otp_email

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _to_user_response(user: UserAuth) -> UserMeResponse:
    return UserMeResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        is_active=user.is_active,
        is_email_verified=user.is_email_verified,
    )


def _token_response(user: UserAuth) -> TokenResponse:
    return TokenResponse(access_token=create_access_token(user.id), user=_to_user_response(user))


def _find_user(db: Session, email: str) -> UserAuth | None:
    return db.scalar(select(UserAuth).where(UserAuth.email == email.lower()))


def _issue_otp(user: UserAuth) -> str:
    otp = generate_otp()
    user.otp_hash = hash_otp(otp)
    user.otp_expires_at = datetime.utcnow() + timedelta(minutes=settings.otp_ttl_minutes)
    user.otp_attempts = 0
    return otp


@router.post("/register", response_model=TokenResponse, status_code=201)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> TokenResponse:
    """Direct registration without the OTP round trip."""
    if _find_user(db, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = UserAuth(
        name=payload.name.strip(),
        email=payload.email.lower(),
        password_hash=get_password_hash(payload.password),
        is_email_verified=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("User registered: %s", user.email)
    return _token_response(user)


@router.post("/send-otp", response_model=OtpSentResponse, dependencies=[rate_limit("otp")])
def send_otp(payload: RegisterRequest, db: Session = Depends(get_db)) -> OtpSentResponse:
    email = payload.email.lower()
    user = _find_user(db, email)
    if user and user.is_email_verified:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    if user is None:
        user = UserAuth(email=email, is_email_verified=False)
        db.add(user)
    user.name = payload.name.strip()
    user.password_hash = get_password_hash(payload.password)
    otp = _issue_otp(user)
    db.commit()

    try:
        send_otp_email(email, user.name, otp)
    except MailError:
        logger.exception("OTP email failed for %s", email)
        db.delete(user)
        db.commit()
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to send OTP email. Please check your email address and try again.",
        )

    return OtpSentResponse(message="OTP sent to your email. Please verify to complete registration.", email=email)


@router.post("/verify-otp", response_model=TokenResponse)
def verify_otp_code(payload: VerifyOtpRequest, db: Session = Depends(get_db)) -> TokenResponse:
    user = _find_user(db, payload.email)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.is_email_verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already verified. Please login.")
    if not user.otp_hash or not user.otp_expires_at:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No OTP found. Please request a new OTP.")
    if datetime.utcnow() > user.otp_expires_at:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="OTP has expired. Please request a new OTP.")
    if user.otp_attempts >= settings.otp_max_attempts:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Too many failed attempts. Please request a new OTP.",
        )

    if not verify_otp(payload.otp, user.otp_hash):
        user.otp_attempts += 1
        db.commit()
        remaining = settings.otp_max_attempts - user.otp_attempts
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid OTP. {remaining} attempts remaining.",
        )

    user.is_email_verified = True
    user.clear_otp()
    db.commit()
    db.refresh(user)

    logger.info("Email verified: %s", user.email)
    return _token_response(user)


@router.post("/resend-otp", response_model=OtpSentResponse, dependencies=[rate_limit("otp")])
def resend_otp(payload: ResendOtpRequest, db: Session = Depends(get_db)) -> OtpSentResponse:
    user = _find_user(db, payload.email)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.is_email_verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already verified. Please login.")

    otp = _issue_otp(user)
    db.commit()

    try:
        send_otp_email(user.email, user.name, otp)
    except MailError:
        logger.exception("OTP resend failed for %s", user.email)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to send OTP email")

    return OtpSentResponse(message="New OTP sent to your email", email=user.email)


def _authenticate(db: Session, email: str, password: str) -> UserAuth:
    user = _find_user(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User inactive")
    # Admins created by script skip email verification.
    if not user.is_admin and not user.is_email_verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Please verify your email first. Check your inbox for the OTP.",
        )
    return user


@router.post("/token", response_model=TokenResponse, dependencies=[rate_limit("login")])
def login_form(form: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)) -> TokenResponse:
    return _token_response(_authenticate(db, form.username, form.password))


@router.post("/login", response_model=TokenResponse, dependencies=[rate_limit("login")])
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    user = _authenticate(db, payload.email, payload.password)
    logger.info("User logged in: %s", user.email)
    return _token_response(user)
