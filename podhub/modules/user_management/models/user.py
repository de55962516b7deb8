from sqlalchemy import Boolean, Column, String, DateTime
from sqlalchemy.sql import func

from podhub.db.session import Base

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    username = Column(String, unique=True, index=True)
    full_name = Column(String, nullable=True)
    avatar = Column(String, nullable=True)
    role = Column(String, default="member")  # member, pod_owner
    is_active = Column(Boolean, default=True)
    is_admin = Column(Boolean, default=False)  # Platform administrators approve pods
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
