from __future__ import annotations

import secrets
from datetime import datetime, timedelta

from jose import jwt
from passlib.context import CryptContext

from cityguide.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"
OTP_LENGTH = 6


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def generate_otp() -> str:
    return str(secrets.randbelow(900_000) + 100_000)


# OTP codes are stored hashed, same as passwords.
hash_otp = get_password_hash
verify_otp = verify_password


def create_access_token(subject: str, *, expires_minutes: int | None = None) -> str:
    expire = datetime.utcnow() + timedelta(minutes=expires_minutes or settings.access_token_exp_minutes)
    to_encode = {"sub": subject, "exp": expire}
    return jwt.encode(to_encode, settings.app_secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, settings.app_secret_key, algorithms=[ALGORITHM])
