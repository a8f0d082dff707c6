from sqlalchemy import Column, DateTime, String, func

from storefront.shared.database import Base


class UserProfile(Base):
    """Durable user record, created from the caller identity on first checkout."""

    __tablename__ = "users"

    id = Column(String(255), primary_key=True)
    email = Column(String(255), nullable=False, default="")
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    profile_image = Column(String(1000), nullable=False, default="")
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
