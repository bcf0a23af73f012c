from sqlalchemy import Column, String, DateTime
from ..database import Base
from .meeting import utcnow


class User(Base):
    __tablename__ = "users"

    # External identifier issued by the auth provider
    id = Column(String(255), primary_key=True)
    email = Column(String(320), nullable=False)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    image_url = Column(String(1024), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
