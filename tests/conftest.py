import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.dependencies.db import get_db
from app.models.course import Course
from app.models.institute import Institute
from app.models.result import Result
from app.models.student import Student
from app.services.token_service import TokenService
from app.services.user_service import create_user
from app.utils.grading import grade_for_score

# 테스트 전용 in-memory SQLite (모든 커넥션이 같은 DB 를 보도록 StaticPool)
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

DESKTOP_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/120.0 Safari/537.36"
IPHONE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 Mobile/15E148"

_seq = itertools.count(1)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def token_service(db_session):
    return TokenService(db_session)


@pytest.fixture
def make_user(db_session):
    def _make_user(email=None, password="password123!", name="테스트유저", role=None):
        email = email or f"user{next(_seq)}@example.com"
        return create_user(db_session, email=email, password=password, name=name, role=role)
    return _make_user


@pytest.fixture
def make_institute(db_session):
    def _make_institute(name=None):
        institute = Institute(
            name=name or f"Institute {next(_seq)}",
            address="1 Main Street, Chicago",
            contact="+13125550100",
        )
        db_session.add(institute)
        db_session.commit()
        return institute
    return _make_institute


@pytest.fixture
def make_student(db_session):
    def _make_student(institute, name=None):
        n = next(_seq)
        student = Student(
            name=name or f"Student {n}",
            email=f"student{n}@example.com",
            institute_id=institute.id,
        )
        db_session.add(student)
        db_session.commit()
        return student
    return _make_student


@pytest.fixture
def make_course(db_session):
    def _make_course(year=2024, name=None, code="CS101", credits=3):
        course = Course(name=name or f"Course {next(_seq)}", code=code, credits=credits, year=year)
        db_session.add(course)
        db_session.commit()
        return course
    return _make_course


@pytest.fixture
def make_result(db_session):
    def _make_result(student, course, score, year=2024, institute_id=None):
        result = Result(
            student_id=student.id,
            course_id=course.id,
            institute_id=institute_id or student.institute_id,
            score=score,
            grade=grade_for_score(score),
            year=year,
        )
        db_session.add(result)
        db_session.commit()
        return result
    return _make_result
