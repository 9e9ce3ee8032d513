from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from educhain.config import settings

class Base(DeclarativeBase):
    pass

def normalize_url(url: str | None) -> str:
    url = url or "sqlite:///./educhain.db"
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg://", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url

def make_engine(url: str | None = None, **kwargs) -> Engine:
    url = normalize_url(url or settings.database_url)

    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}

    return create_engine(
        url,
        connect_args=connect_args,
        pool_pre_ping=True,
        future=True,
        **kwargs,
    )

def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
        future=True,
    )

def init_db(engine: Engine):
    from educhain.models import user, auth_session, course, cert  # noqa: F401
    Base.metadata.create_all(bind=engine)
