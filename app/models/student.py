# /app/models/student.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base


class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    institute_id = Column(Integer, ForeignKey("institutes.id"), nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())

    institute = relationship("Institute", back_populates="students")
