
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from studykit.auth.deps import get_db, COOKIE_NAME
from studykit.config import settings
from studykit.schemas.auth import RegisterIn, LoginIn, TokenOut
from studykit.auth.service import register_user, login_user

router = APIRouter(prefix="/auth", tags=["auth"])

def set_auth_cookie(response: Response, token: str):
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="Lax",
        secure=settings.app_env != "dev",
        path="/",
        max_age=settings.access_token_expire_minutes * 60,
    )

@router.post("/register", response_model=TokenOut, status_code=201)
def register(body: RegisterIn, response: Response, db: Session = Depends(get_db)):
    user = register_user(db, body.name, body.email, body.password)
    token = login_user(db, user.email, body.password)
    set_auth_cookie(response, token)
    return TokenOut(access_token=token)

@router.post("/login", response_model=TokenOut)
def login(body: LoginIn, response: Response, db: Session = Depends(get_db)):
    token = login_user(db, body.email, body.password)
    set_auth_cookie(response, token)
    return TokenOut(access_token=token)

@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(COOKIE_NAME, path="/")
    return {"ok": True}
