"""Password hashing and the HS256 access tokens carried in ``sk_jwt``."""
from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext

from studykit.config import settings

ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt_sha256", "bcrypt"], deprecated="auto")

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)

def create_access_token(subject: str, expires_minutes: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=expires_minutes or settings.access_token_expire_minutes)
    return jwt.encode({"sub": subject, "iat": now, "exp": expire}, settings.secret_key, algorithm=ALGORITHM)

def decode_token(token: str) -> dict:
    """Raises ``jose.JWTError`` for bad signatures and expired tokens."""
    return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
