from datetime import datetime, timedelta, timezone
from jose import jwt
import bcrypt
from typing import Union

def get_password_hash(password: str) -> str:
    """Password hash (bcrypt)"""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode(), hashed_password.encode())

def create_access_token(
    data: dict,
    secret_key: str,
    algorithm: str,
    expires_delta: Union[timedelta, None] = None
) -> str:
    """Signed JWT carrying ``data`` plus an ``exp`` claim"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=15)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)
