# jigz/api/v1/auth.py
from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from jigz.db.models import User
from jigz.db.session import get_db
from jigz.repositories import marketplace as repo
from jigz.services.auth import AuthError, authenticate, create_access_token, decode_access_token, register_user

router = APIRouter()

class SignupIn(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    name: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=6, max_length=128)

class LoginIn(BaseModel):
    email: EmailStr
    password: str

class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"

@router.post("/auth/signup", status_code=201, response_model=TokenOut)
def signup(payload: SignupIn, db: Session = Depends(get_db)):
    try:
        user = register_user(db, payload.username, payload.email, payload.name, payload.password)
    except AuthError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"access_token": create_access_token(user.id), "token_type": "bearer"}

@router.post("/auth/login", response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = authenticate(db, payload.email, payload.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return {"access_token": create_access_token(user.id), "token_type": "bearer"}

# Dependency to get current user
security = HTTPBearer()

def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    try:
        td = decode_access_token(credentials.credentials)
    except AuthError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if not td.sub:
        raise HTTPException(status_code=401, detail="Invalid token")
    user = repo.get_user(db, td.sub)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account disabled")
    return user
