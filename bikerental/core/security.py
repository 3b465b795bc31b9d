# bikerental/core/security.py
from datetime import datetime, timedelta, timezone
from typing import Optional, List

from bson import ObjectId
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from loguru import logger
from passlib.context import CryptContext

from bikerental.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from bikerental.models.token import TokenData
from bikerental.models.user import User
from bikerental.models.enum import UserRole

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def create_user_token(user: User) -> str:
    """Session token carrying the user id (``sub``) and role."""
    return create_access_token({"sub": str(user.id), "role": UserRole(user.role).value})


def decode_access_token(token: str) -> TokenData:
    """Raises JWTError when the token is invalid, expired or has no subject."""
    payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    user_id: Optional[str] = payload.get("sub")
    if user_id is None:
        raise JWTError("Subject ('sub') missing in token payload.")
    return TokenData(user_id=user_id, role=payload.get("role"))


async def get_current_user(
    request: Request,
    token: str = Depends(oauth2_scheme),
) -> User:
    """
    Loads the user named by the token. AuthMiddleware normally decodes the
    token already and leaves the id in request.state; otherwise decode here.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user_id: Optional[str] = getattr(request.state, "user_id", None)
    if not user_id:
        try:
            user_id = decode_access_token(token).user_id
        except JWTError:
            logger.warning("Token decode failed in get_current_user dependency.")
            raise credentials_exception

    if not ObjectId.is_valid(user_id):
        raise credentials_exception

    user = await User.get(ObjectId(user_id))
    if user is None:
        logger.warning(f"User '{user_id}' from token not found in database.")
        raise credentials_exception
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.disabled:
        logger.warning(f"Access denied for disabled user '{current_user.email}'.")
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


def require_roles(required_roles: List[UserRole]):
    """Dependency factory: the current user must hold one of the given roles."""
    async def roles_checker(current_user: User = Depends(get_current_active_user)) -> User:
        if current_user.role not in required_roles:
            logger.warning(
                f"Forbidden: User '{current_user.email}' with role '{UserRole(current_user.role).value}' "
                f"attempted action requiring one of roles: {[r.value for r in required_roles]}."
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return current_user
    return roles_checker


require_admin = require_roles([UserRole.ADMIN])
