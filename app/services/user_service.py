# /app/services/user_service.py
from typing import Optional
from sqlalchemy.orm import Session
from passlib.hash import bcrypt

from app.models.user import User, UserRole


def create_user(
        db: Session,
        *,
        email: str,
        password: str,
        name: str,
        role: Optional[UserRole] = None,
        commit: bool = True,
) -> User:
    """
    비밀번호는 bcrypt 해시로 저장.
    commit=False 면 flush 만 하고 커밋은 호출한 쪽 트랜잭션에 맡긴다.
    """
    db_user = User(
        email=email,
        password=bcrypt.hash(password),
        name=name,
        role=role or UserRole.user,
    )
    db.add(db_user)
    if commit:
        db.commit()
        db.refresh(db_user)
    else:
        db.flush()
    return db_user


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """ Email로 사용자 조회 (중복 확인용) """
    return db.query(User).filter(User.email == email).first()


def verify_password(password: str, hashed_password: str) -> bool:
    return bcrypt.verify(password, hashed_password)
