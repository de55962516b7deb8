from typing import Optional
from sqlalchemy.orm import Session

from podhub.modules.user_management.models.user import User

def get_user(db: Session, user_id: str) -> Optional[User]:
    """Get user by ID"""
    return db.query(User).filter(User.id == user_id).first()

def get_user_by_username(db: Session, username: str) -> Optional[User]:
    """Get user by username"""
    return db.query(User).filter(User.username == username).first()

def display_name(user: User) -> str:
    return user.full_name or user.username or "Someone"
