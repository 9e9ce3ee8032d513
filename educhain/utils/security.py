
import hashlib
import secrets
from passlib.context import CryptContext
from jose import jwt, JWTError

pwd_context = CryptContext(schemes=["bcrypt_sha256", "bcrypt"], deprecated="auto")

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)

def generate_session_token() -> str:
    return secrets.token_hex(32)

def hash_session_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

def sign_session_token(token: str, secret_key: str) -> str:
    return jwt.encode({"sid": token}, secret_key, algorithm="HS256")

def unsign_session_token(value: str, secret_key: str) -> str | None:
    """Returns the raw session token carried by a signed cookie, or None if tampered."""
    try:
        payload = jwt.decode(value, secret_key, algorithms=["HS256"])
    except JWTError:
        return None
    sid = payload.get("sid")
    return sid if isinstance(sid, str) else None
