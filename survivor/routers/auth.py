import re
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlmodel import Session

from ..auth import authenticate_user, create_session, create_user, delete_session, get_user_by_email
from ..config import SESSION_COOKIE_NAME, SESSION_EXPIRE_DAYS, TEMPLATES_DIR
from ..database import get_session
from ..dependencies import get_current_user
from ..models import User

router = APIRouter(tags=["auth"])
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


def _login_redirect(db: Session, user: User) -> RedirectResponse:
    token = create_session(db, user.id)
    response = RedirectResponse(url="/dashboard", status_code=status.HTTP_303_SEE_OTHER)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        max_age=SESSION_EXPIRE_DAYS * 24 * 60 * 60,
        samesite="lax"
    )
    return response


@router.get("/", response_class=HTMLResponse)
async def home(current_user: Optional[User] = Depends(get_current_user)):
    if current_user:
        return RedirectResponse(url="/dashboard", status_code=status.HTTP_303_SEE_OTHER)
    return RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, error: Optional[str] = None):
    return templates.TemplateResponse(request, "login.html", {"error": error})


@router.post("/login")
async def login(
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_session)
):
    user = authenticate_user(db, email.strip().lower(), password)
    if not user:
        return RedirectResponse(url="/login?error=invalid_credentials", status_code=status.HTTP_303_SEE_OTHER)
    return _login_redirect(db, user)


@router.get("/register", response_class=HTMLResponse)
async def register_page(request: Request, error: Optional[str] = None):
    return templates.TemplateResponse(request, "register.html", {"error": error})


@router.post("/register")
async def register(
    email: str = Form(...),
    password: str = Form(...),
    display_name: str = Form(...),
    db: Session = Depends(get_session)
):
    email = email.strip().lower()
    display_name = display_name.strip()

    if not re.match(EMAIL_PATTERN, email):
        return RedirectResponse(url="/register?error=invalid_email", status_code=status.HTTP_303_SEE_OTHER)

    if len(password) < 6:
        return RedirectResponse(url="/register?error=password_too_short", status_code=status.HTTP_303_SEE_OTHER)

    if not display_name:
        return RedirectResponse(url="/register?error=missing_name", status_code=status.HTTP_303_SEE_OTHER)

    if get_user_by_email(db, email):
        return RedirectResponse(url="/register?error=email_exists", status_code=status.HTTP_303_SEE_OTHER)

    user = create_user(db, email=email, password=password, display_name=display_name)
    return _login_redirect(db, user)


@router.post("/logout")
async def logout(request: Request, db: Session = Depends(get_session)):
    session_token = request.cookies.get(SESSION_COOKIE_NAME)
    if session_token:
        delete_session(db, session_token)

    response = RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response
