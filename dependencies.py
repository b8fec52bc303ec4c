import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from database import get_db, settings
from errors import ForbiddenError, UnauthorizedError
from models import User
from schemas import TokenData

logger = logging.getLogger(__name__)

# Supabase signs access tokens with the project's JWT secret
SECRET_KEY = settings.SUPABASE_JWT_SECRET
ALGORITHM = "HS256"

security = HTTPBearer(auto_error=False)

def verify_token(token: str) -> TokenData:
    try:
        payload = jwt.decode(
            token,
            SECRET_KEY,
            algorithms=[ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except JWTError as e:
        logger.info(f"JWT Error: {e}")
        raise UnauthorizedError("Unauthorized: Invalid token")

    email: Optional[str] = payload.get("email")
    if not email:
        raise UnauthorizedError("Unauthorized: Invalid token")
    return TokenData(email=email)

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise UnauthorizedError("Unauthorized: No token provided")

    token_data = verify_token(credentials.credentials)
    user = db.query(User).filter(User.email == token_data.email).first()
    if user is None:
        logger.warning(f"No application user for authenticated email {token_data.email}")
        raise ForbiddenError("Forbidden: User profile not found or incomplete.")
    return user

def get_current_organiser(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_organiser:
        raise ForbiddenError("Forbidden: User is not an organizer.")
    return current_user

def require_owner(record, user: User, action: str) -> None:
    """Only the organiser who created a record may mutate it."""
    if record.created_by != user.email or not user.is_organiser:
        raise ForbiddenError(f"Forbidden: You are not authorized to {action}.")
