from sqlalchemy import Column, Integer, Float, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base


class Result(Base):
    __tablename__ = "results"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    institute_id = Column(Integer, ForeignKey("institutes.id"), nullable=False)
    score = Column(Float, nullable=False)
    grade = Column(String(2), nullable=False)
    year = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    student = relationship("Student")
    course = relationship("Course")
    institute = relationship("Institute")


# institute-results 조회 (institute_id + year 필터, score 정렬)
Index("ix_results_institute_year", Result.institute_id, Result.year)
