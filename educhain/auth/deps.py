
from dataclasses import dataclass
from fastapi import Request, Depends, HTTPException, status
from sqlalchemy.orm import Session
from educhain.config import Settings
from educhain.ledger.client import SuiClient
from educhain.models.user import ROLE_ISSUER, ROLE_STUDENT


@dataclass(frozen=True)
class CurrentUser:
    id: int
    email: str
    role: str


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()

def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_ledger(request: Request) -> SuiClient:
    return request.app.state.ledger

def get_current_user(request: Request) -> CurrentUser:
    user = getattr(request.state, "user", None)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return user

def require_issuer(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != ROLE_ISSUER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return user

def require_student(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != ROLE_STUDENT:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return user
