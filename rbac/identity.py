"""
Identity helpers: turn an authenticated user id into an Actor.
Role, school and active flag are always read from the database, never
taken from the client.
"""
from typing import Any, Dict

from sqlalchemy.orm import Session

from database import User
from .exceptions import InvalidUserError
from .models import Actor


def get_user_record(db: Session, user_id: int) -> User:
    """
    Get user from database.
    
    Raises:
        InvalidUserError: If user not found
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise InvalidUserError(user_id)
    return user


def load_actor(db: Session, user_id: int) -> Actor:
    """
    Build a fresh Actor for one authorization decision.
    
    Args:
        db: Database session
        user_id: The authenticated subject's user ID
        
    Returns:
        Actor with the stored role claim, school and active flag
        
    Raises:
        InvalidUserError: If user not found
    """
    user = get_user_record(db, user_id)
    return Actor(
        id=user.id,
        role=user.role,
        school_id=user.school_id,
        is_active=bool(user.is_active),
    )


def get_user(db: Session, user_id: int) -> Dict[str, Any]:
    """
    Get public user information (no contact details).
    
    Returns:
        Dictionary with id, name, role, school_id and is_active
    """
    user = get_user_record(db, user_id)
    return {
        "id": user.id,
        "name": user.name,
        "role": user.role,
        "school_id": user.school_id,
        "is_active": bool(user.is_active),
    }
