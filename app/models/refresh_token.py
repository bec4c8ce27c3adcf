import enum

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Enum, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base


class DeviceType(str, enum.Enum):
    mobile = "mobile"
    desktop = "desktop"
    tablet = "tablet"


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(255), unique=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    device_id = Column(String(32), nullable=False)
    device_name = Column(String(100), nullable=False, default="Unknown Device")
    device_type = Column(Enum(DeviceType, name="device_type"), nullable=False, default=DeviceType.desktop)
    expires_at = Column(DateTime, nullable=False)
    revoked = Column(Boolean, nullable=False, default=False)
    replaced_by_token = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="refresh_tokens")


Index("ix_refresh_tokens_user_device", RefreshToken.user_id, RefreshToken.device_id, RefreshToken.revoked)
