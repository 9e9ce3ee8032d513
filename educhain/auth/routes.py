
import logging
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from educhain.auth.deps import get_db, get_settings
from educhain.auth.service import SignupError, register_user, authenticate, create_session, delete_session
from educhain.config import Settings
from educhain.middleware.auth import COOKIE_NAME
from educhain.models.user import ROLE_ISSUER
from educhain.schemas.auth import SignupIn, LoginIn, UserOut
from educhain.utils.http import read_payload
from educhain.utils.security import sign_session_token, unsign_session_token
from educhain.web.templating import templates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

def set_auth_cookie(response: Response, value: str, settings: Settings):
    response.set_cookie(
        key=COOKIE_NAME,
        value=value,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
        max_age=60 * 60 * settings.session_ttl_hours,
    )

def _first_error(exc: ValidationError) -> tuple[str, str | None]:
    err = exc.errors()[0]
    field = str(err["loc"][0]) if err.get("loc") else None
    if err.get("type") == "missing":
        return f"{field} is required", field
    return f"{field}: {err.get('msg')}", field

def _signup_failed(request: Request, is_json: bool, message: str, field: str | None, values: dict):
    if is_json:
        return JSONResponse({"error": message, "field": field}, status_code=400)
    values = {k: v for k, v in values.items() if "password" not in k}
    return templates.TemplateResponse(
        request, "signup.html",
        {"title": "Register", "error": message, "field": field, "values": values},
        status_code=400,
    )

def _login_failed(request: Request, is_json: bool, message: str, email: str | None, status_code: int):
    if is_json:
        return JSONResponse({"error": message}, status_code=status_code)
    return templates.TemplateResponse(
        request, "signin.html",
        {"title": "Login", "error": message, "values": {"email": email or ""}},
        status_code=status_code,
    )

@router.post("/signup")
async def signup(request: Request, db: Session = Depends(get_db)):
    payload, is_json = await read_payload(request)
    try:
        body = SignupIn.model_validate(payload)
    except ValidationError as e:
        message, field = _first_error(e)
        return _signup_failed(request, is_json, message, field, payload)

    try:
        user = register_user(db, body)
    except SignupError as e:
        return _signup_failed(request, is_json, e.message, e.field, payload)

    if is_json:
        return JSONResponse(UserOut.model_validate(user).model_dump(), status_code=201)
    return RedirectResponse(url="/auth/signin", status_code=303)

@router.post("/login")
async def login(request: Request, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    payload, is_json = await read_payload(request)
    try:
        body = LoginIn.model_validate(payload)
    except ValidationError as e:
        message, _ = _first_error(e)
        return _login_failed(request, is_json, message, payload.get("email"), 400)

    user = authenticate(db, body.email, body.password)
    if user is None:
        return _login_failed(request, is_json, "Invalid email or password", body.email, 401)

    token = create_session(db, user, settings.session_ttl_hours)
    target = "/dashboard/issuer" if user.role == ROLE_ISSUER else "/dashboard/student"
    response = RedirectResponse(url=target, status_code=303)
    set_auth_cookie(response, sign_session_token(token, settings.secret_key), settings)
    return response

@router.post("/logout")
def logout(request: Request, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    cookie = request.cookies.get(COOKIE_NAME)
    token = unsign_session_token(cookie, settings.secret_key) if cookie else None
    if token:
        delete_session(db, token)

    response = RedirectResponse(url="/auth/signin", status_code=303)
    response.delete_cookie(COOKIE_NAME, path="/", httponly=True, samesite="lax", secure=settings.cookie_secure)
    return response
