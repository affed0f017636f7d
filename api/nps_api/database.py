import os
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql+psycopg2://postgres:postgres@db:5432/nps")

Base = declarative_base()


def make_engine(url: str):
    if url in {"sqlite://", "sqlite:///:memory:"}:
        # In-memory SQLite must share one connection across sessions.
        return create_engine(url, future=True, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    if url.startswith("sqlite"):
        return create_engine(url, future=True, connect_args={"check_same_thread": False})
    return create_engine(url, future=True, pool_pre_ping=True)


def make_session_factory(bind):
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, future=True, expire_on_commit=False)


engine = make_engine(DATABASE_URL)
SessionLocal = make_session_factory(engine)
