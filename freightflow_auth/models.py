# freightflow_auth/models.py
import uuid

from sqlalchemy import Column, DateTime, String

from .database import Base


def new_user_id() -> str:
    return uuid.uuid4().hex


# --- Database Model: User ---
class User(Base):
    __tablename__ = "users"
    id = Column(String(32), primary_key=True, default=new_user_id)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False)
    # Both set while a password reset is pending, both NULL otherwise
    reset_token = Column(String, nullable=True, index=True)
    reset_token_expires = Column(DateTime, nullable=True)

    def public_view(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
        }

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"
