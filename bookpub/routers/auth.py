from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from .. import models, schemas
from ..database import get_db
from ..auth import authenticate_user, get_password_hash
from ..sessions import WebSession, get_web_session
from ..templating import render
from ..utils.logging import get_logger

router = APIRouter()
logger = get_logger("bookpub.routers.auth")

INVALID_CREDENTIALS = "Invalid credentials"

@router.get("/")
async def index(web: WebSession = Depends(get_web_session)):
    target = "/homepage" if web.is_authenticated else "/login"
    return RedirectResponse(url=target, status_code=303)

@router.get("/register", response_class=HTMLResponse)
async def register_page(request: Request, web: WebSession = Depends(get_web_session)):
    return render(request, web, "register.html", {"title": "Register"})

@router.post("/register")
async def register(
    request: Request,
    db: Session = Depends(get_db),
    web: WebSession = Depends(get_web_session)
):
    form = await request.form()
    values = {
        "username": form.get("username") or "",
        "email": form.get("email") or "",
        "password": form.get("password") or "",
        "confirm": form.get("confirm") or "",
    }
    context = {"title": "Register", "form": {"username": values["username"], "email": values["email"]}}

    try:
        data = schemas.RegisterForm(**values)
    except ValidationError as exc:
        context["form_error"] = schemas.first_error(exc)
        return render(request, web, "register.html", context)

    if data.password != data.confirm:
        context["form_error"] = "Passwords do not match"
        return render(request, web, "register.html", context)

    existing = db.query(models.User).filter(
        or_(models.User.username == data.username, func.lower(models.User.email) == data.email.lower())
    ).first()
    if existing:
        context["form_error"] = "Username or email already exists"
        return render(request, web, "register.html", context)

    new_user = models.User(
        username=data.username,
        email=data.email.lower(),
        password_hash=get_password_hash(data.password)
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    logger.info("Registered user id=%s username=%s", new_user.id, new_user.username)

    # Auto login after register
    web.login(new_user)
    return web.apply(RedirectResponse(url="/homepage", status_code=303))

@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, web: WebSession = Depends(get_web_session)):
    if web.is_authenticated:
        return RedirectResponse(url="/homepage", status_code=303)
    return render(request, web, "login.html", {"title": "Login"})

@router.post("/login")
async def login(
    request: Request,
    db: Session = Depends(get_db),
    web: WebSession = Depends(get_web_session)
):
    form = await request.form()
    identifier = form.get("identifier") or ""
    password = form.get("password") or ""

    user = authenticate_user(db, identifier, password)
    if not user:
        raise web.fail("/login", INVALID_CREDENTIALS)

    web.login(user)
    return web.apply(RedirectResponse(url="/homepage", status_code=303))

@router.get("/logout")
async def logout(web: WebSession = Depends(get_web_session)):
    web.logout()
    return web.apply(RedirectResponse(url="/login", status_code=303))
