"""
Trainer model - accounts allowed to sign in.

Passwords are stored as Argon2id hash strings (salt included).
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, String
from app.database import Base


class Trainer(Base):
    __tablename__ = "trainers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(Text, nullable=False, unique=True,
                   doc="Login email, stored lowercase")
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<Trainer(id={self.id}, email='{self.email}')>"
