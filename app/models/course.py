from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from app.db.base import Base


class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(32), nullable=False)
    credits = Column(Integer, nullable=False, default=3)
    year = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())
