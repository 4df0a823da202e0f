# jigz/services/auth.py
from datetime import datetime, timedelta, timezone
from typing import Optional
import hashlib
import secrets
from jose import jwt, JWTError
from pydantic import BaseModel
from sqlalchemy.orm import Session

from jigz.core.config import settings
from jigz.db.models import User
from jigz.repositories import marketplace as repo
from jigz.services.ledger import baseline_for_role

# Password hashing using PBKDF2-HMAC-SHA256
_PBKDF2_ITERATIONS = 100_000

# JWT config
ALGORITHM = "HS256"

class TokenData(BaseModel):
    sub: Optional[str] = None

class AuthError(Exception):
    pass

def hash_password(password: str) -> str:
    if password is None:
        password = ""
    salt = secrets.token_hex(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), _PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${_PBKDF2_ITERATIONS}${salt}${dk.hex()}"


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if plain is None:
        plain = ""
    try:
        scheme, iterations, salt, hashhex = (hashed or "").split("$")
        iterations = int(iterations)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac("sha256", plain.encode("utf-8"), salt.encode("utf-8"), iterations)
    return secrets.compare_digest(dk.hex(), hashhex)

def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta if expires_delta else timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {"sub": subject, "iat": now, "exp": exp}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)

def decode_access_token(token: str) -> TokenData:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise AuthError("Invalid token") from exc
    return TokenData(sub=payload.get("sub"))


def register_user(db: Session, username: str, email: str, name: str, password: str, role: str = "user") -> User:
    """Create an account seeded with the role's coin baseline."""
    if repo.get_user_by_email(db, email) or repo.get_user_by_username(db, username):
        raise AuthError("Email or username already registered")
    user = User(
        username=username,
        email=email,
        name=name,
        password_hash=hash_password(password),
        role=role,
        coins=baseline_for_role(role),
    )
    db.add(user)
    db.commit()
    return user


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    user = repo.get_user_by_email(db, email)
    if user is None or not user.is_active or not verify_password(password, user.password_hash):
        return None
    return user
