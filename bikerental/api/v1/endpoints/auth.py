# bikerental/api/v1/endpoints/auth.py
from fastapi import APIRouter, Depends, HTTPException, status, Request, Body
from fastapi.security import OAuth2PasswordRequestForm
from loguru import logger
from pymongo.errors import DuplicateKeyError

from bikerental.core.rate_limiter import limiter
from bikerental.core.security import (
    create_user_token,
    verify_password,
    get_current_active_user,
    get_password_hash,
)
from bikerental.core.utils import document_data
from bikerental.models.enum import UserRole
from bikerental.models.token import Token
from bikerental.models.user import User

router = APIRouter(tags=["Authentication"])


async def authenticate_user(email: str, password: str) -> User:
    user = await User.find_one(User.email == email.strip().lower())
    if not user or not verify_password(password, user.hashed_password):
        logger.warning(f"Failed login attempt for '{email}'.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return user


@router.post("/token", response_model=Token)
@limiter.limit("10/minute")
async def login_for_access_token(request: Request, form_data: OAuth2PasswordRequestForm = Depends()):
    """OAuth2 password flow; the form's ``username`` is the account email."""
    user = await authenticate_user(form_data.username, form_data.password)
    return {"access_token": create_user_token(user), "token_type": "bearer"}


@router.post("/login", response_model=Token)
@limiter.limit("10/minute")
async def login(request: Request, credentials: User.Login = Body(...)):
    user = await authenticate_user(credentials.email, credentials.password)
    logger.info(f"User '{user.email}' logged in.")
    return {"access_token": create_user_token(user), "token_type": "bearer"}


@router.post("/register", response_model=User.Response, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def register_user(request: Request, user_in: User.Create = Body(...)):
    if user_in.role == UserRole.ADMIN:
        raise HTTPException(status_code=400, detail="Admin accounts cannot be self-registered")

    if await User.find_one(User.email == user_in.email):
        raise HTTPException(status_code=400, detail="Email already registered")

    user_obj = User(
        email=user_in.email,
        name=user_in.name.strip(),
        hashed_password=get_password_hash(user_in.password),
        role=user_in.role,
        disabled=False,
    )
    try:
        await user_obj.insert()
    except DuplicateKeyError:
        # Lost a race with a concurrent registration for the same email
        raise HTTPException(status_code=400, detail="Email already registered")

    logger.info(f"Registered user '{user_obj.email}' with role {UserRole(user_obj.role).value}.")
    return User.Response.model_validate(document_data(user_obj))


@router.get("/me", response_model=User.Response)
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return User.Response.model_validate(document_data(current_user))
