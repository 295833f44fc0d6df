from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from .database import Base

GENERATION_STATUS_COMPLETED = "completed"


class User(Base):
    __tablename__ = "users"
    uid = Column(String(128), primary_key=True)
    last_active = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class Generation(Base):
    __tablename__ = "generations"
    user_id = Column(String(128), ForeignKey("users.uid"), primary_key=True)
    generation_id = Column(String(128), primary_key=True)
    prompt = Column(Text, nullable=False)
    original_url = Column(Text)
    input_image_url = Column(Text)
    has_input_image = Column(Boolean, nullable=False, default=False)
    aspect_ratio = Column(String(8))
    generated_images = Column(JSON, nullable=False, default=list)
    count = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=GENERATION_STATUS_COMPLETED)
    created_at = Column(DateTime(timezone=True), nullable=False)
