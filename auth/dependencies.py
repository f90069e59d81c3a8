from typing import Optional

from fastapi.security import OAuth2PasswordBearer
from fastapi import Depends, HTTPException, status
from jose import JWTError, jwt

from config.dependencies import get_settings, get_user_store
from config.settings import Settings
from models.schemas import UserInDB
from storage import UserStore

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/token", auto_error=False)

async def authenticate_token(token: Optional[str], users: UserStore, settings: Settings) -> UserInDB:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_exception
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        username: str = payload.get("sub")
        if username is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    user = await users.get_by_username(username)
    if user is None:
        raise credentials_exception
    return user

async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    users: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_settings)
) -> UserInDB:
    return await authenticate_token(token, users, settings)

async def get_request_user(
    token: Optional[str] = Depends(oauth2_scheme),
    users: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_settings)
) -> Optional[UserInDB]:
    """Current user, or None for anonymous requests when AUTH_REQUIRED is off"""
    if not token and not settings.AUTH_REQUIRED:
        return None
    return await authenticate_token(token, users, settings)
