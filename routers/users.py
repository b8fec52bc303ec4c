from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
import logging
import re
from database import get_db
from errors import NotFoundError
from models import User
from schemas import AuthClientUser, UserSync, User as UserSchema
from services.common import commit_or_raise

logger = logging.getLogger(__name__)

router = APIRouter()

def split_register_number(name: str, register_number: str):
    """Sign-in names look like "Jane Doe 2341234"; peel off the trailing register number."""
    parts = name.split(" ")
    if len(parts) > 1 and re.fullmatch(r"\d+", parts[-1]) and not register_number:
        return " ".join(parts[:-1]), parts[-1]
    return name, register_number

def _profile_from_auth_user(auth_user: AuthClientUser) -> dict:
    metadata = auth_user.user_metadata
    name = auth_user.name or metadata.get("full_name") or ""
    register_number = str(metadata.get("register_number") or "")
    if name:
        name, register_number = split_register_number(name, register_number)
    avatar_url = (
        metadata.get("avatar_url")
        or metadata.get("picture")
        or auth_user.avatar_url
        or auth_user.picture
    )
    return {
        "email": auth_user.email,
        "name": name or "New User",
        "register_number": register_number or None,
        "avatar_url": avatar_url,
    }

@router.get("")
def get_users(db: Session = Depends(get_db)):
    users = db.query(User).order_by(User.id).all()
    return {"users": [UserSchema.model_validate(user) for user in users]}

@router.get("/{email}")
def get_user(email: str, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise NotFoundError("User not found")
    return {"user": UserSchema.model_validate(user)}

@router.post("")
def sync_user(body: UserSync, response: Response, db: Session = Depends(get_db)):
    """Create the application user for a signed-in auth user, if missing"""
    existing = db.query(User).filter(User.email == body.user.email).first()
    if existing:
        return {
            "user": UserSchema.model_validate(existing),
            "isNew": False,
            "message": "User already exists.",
        }

    user = User(**_profile_from_auth_user(body.user))
    db.add(user)
    commit_or_raise(
        db,
        conflict_message="User already exists.",
        invalid_message="Error creating user: Invalid data.",
    )
    db.refresh(user)
    logger.info(f"Created application user {user.email}")

    response.status_code = status.HTTP_201_CREATED
    return {
        "user": UserSchema.model_validate(user),
        "isNew": True,
        "message": "User created successfully.",
    }
