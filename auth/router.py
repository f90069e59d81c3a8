from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from datetime import timedelta
import logging

from config.dependencies import get_settings, get_user_store
from config.settings import Settings
from models.schemas import Token, UserCreate, UserInDB, UserPublic
from storage import UserExists, UserStore
from .dependencies import get_current_user
from .utils import verify_password, create_access_token, get_password_hash

router = APIRouter(prefix="/api", tags=["auth"])
logger = logging.getLogger(__name__)

def issue_token(user: UserInDB, settings: Settings) -> Token:
    access_token = create_access_token(
        data={"sub": user.username},
        secret_key=settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return Token(access_token=access_token, token_type="bearer")

async def check_credentials(users: UserStore, username: str, password: str) -> UserInDB:
    user = await users.get_by_username(username)
    if not user or not verify_password(password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user

@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=UserPublic)
async def register(
    user_data: UserCreate,
    users: UserStore = Depends(get_user_store)
):
    """Register a new user"""
    try:
        user = await users.create(user_data.username, get_password_hash(user_data.password))
    except UserExists:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already taken"
        )
    logger.info(f"Registered user {user.username} (id={user.id})")
    return user

@router.post("/login", response_model=Token)
async def login(
    credentials: UserCreate,
    users: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_settings)
):
    """JSON login returning a bearer token"""
    user = await check_credentials(users, credentials.username, credentials.password)
    return issue_token(user, settings)

@router.post("/token", response_model=Token)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    users: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_settings)
):
    """OAuth2 password flow, used by the interactive docs"""
    user = await check_credentials(users, form_data.username, form_data.password)
    return issue_token(user, settings)

@router.get("/user", response_model=UserPublic)
async def read_current_user(current_user: UserInDB = Depends(get_current_user)):
    return current_user
