import logging
from datetime import datetime
from fastapi import Request
from fastapi.responses import RedirectResponse
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool
from educhain.auth.deps import CurrentUser
from educhain.models.auth_session import UserSession
from educhain.models.user import User
from educhain.utils.security import hash_session_token, unsign_session_token

logger = logging.getLogger(__name__)

PUBLIC_PATHS = ["/", "/cert-viewer", "/auth/*", "/static/*", "/uploads/*"]

COOKIE_NAME = "session_id"
SIGNIN_URL = "/auth/signin"


def is_excluded(path: str, patterns) -> bool:
    for pattern in patterns:
        if pattern.endswith("*"):
            if path.startswith(pattern[:-1]):
                return True
        elif path == pattern:
            return True
    return False


def lookup_session(db, token: str) -> CurrentUser | None:
    row = db.execute(
        select(User.id, User.email, User.role)
        .join(UserSession, UserSession.user_id == User.id)
        .where(
            UserSession.id == hash_session_token(token),
            UserSession.expires_at > datetime.utcnow(),
        )
    ).first()
    if row is None:
        return None
    return CurrentUser(id=row.id, email=row.email, role=row.role)


def _lookup(session_factory, token: str) -> CurrentUser | None:
    db = session_factory()
    try:
        return lookup_session(db, token)
    finally:
        db.close()


def make_session_auth(exclude=None):
    """Builds the session-check stage; `exclude` is an ordered list of exact or `prefix*` paths."""
    patterns = list(PUBLIC_PATHS if exclude is None else exclude)

    async def session_auth(request: Request, call_next):
        path = request.url.path

        # public pages skip the session store entirely
        if is_excluded(path, patterns):
            return await call_next(request)

        cookie = request.cookies.get(COOKIE_NAME)
        if not cookie:
            logger.debug("no session cookie for %s", path)
            return RedirectResponse(url=SIGNIN_URL, status_code=303)

        token = unsign_session_token(cookie, request.app.state.settings.secret_key)
        if token is None:
            logger.info("rejected tampered session cookie for %s", path)
            return RedirectResponse(url=SIGNIN_URL, status_code=303)

        try:
            user = await run_in_threadpool(_lookup, request.app.state.session_factory, token)
        except SQLAlchemyError:
            logger.exception("session check failed")
            return RedirectResponse(url=SIGNIN_URL, status_code=303)

        if user is None:
            return RedirectResponse(url=SIGNIN_URL, status_code=303)

        request.state.user = user
        return await call_next(request)

    return session_auth
