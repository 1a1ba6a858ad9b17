
import logging
from sqlalchemy import select
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from studykit.models.user import User
from studykit.utils.security import hash_password, verify_password, create_access_token

logger = logging.getLogger(__name__)

def register_user(db: Session, name: str, email: str, password: str) -> User:
    if db.scalars(select(User).where(User.email == email)).first():
        raise HTTPException(status_code=400, detail="Email already registered")
    user = User(name=name, email=email, password_hash=hash_password(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("registered user=%s", user.id)
    return user

def login_user(db: Session, email: str, password: str) -> str:
    user = db.scalars(select(User).where(User.email == email)).first()
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return create_access_token(str(user.id))
