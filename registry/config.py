from __future__ import annotations

import os
from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker


def _get_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    return int(val)


def _get_bool(name: str, default: bool) -> bool:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    return val.strip().lower() in {"1", "true", "yes", "y", "on"}


class Settings:
    database_url: str = os.getenv("DATABASE_URL") or os.getenv("LATTICE_DATABASE_URL", "sqlite:///./lattice_registry.db")

    auto_create_schema: bool = _get_bool("LATTICE_AUTO_CREATE_SCHEMA", True)

    host: str = os.getenv("LATTICE_HOST", "127.0.0.1")
    port: int = _get_int("LATTICE_PORT", 3000)
    log_level: str = os.getenv("LATTICE_LOG_LEVEL", "info")

    # API keys
    api_key_salt_rounds: int = _get_int("LATTICE_API_KEY_SALT_ROUNDS", 10)

    # Request signing
    require_signatures: bool = _get_bool("LATTICE_REQUIRE_SIGNATURES", False)
    signature_max_age_seconds: int = _get_int("LATTICE_SIGNATURE_MAX_AGE_SECONDS", 300)

    # Seed namespace for anchor address derivation
    address_namespace: bytes = os.getenv("LATTICE_ADDRESS_NAMESPACE", "lattice").encode("utf-8")


settings = Settings()


def _connect_args(database_url: str) -> dict:
    if database_url.startswith("sqlite:"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url,
    future=True,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.database_url),
)

SessionLocal = sessionmaker(
    bind=engine,
    class_=Session,
    expire_on_commit=False,
    autoflush=False,
    autobegin=False,
)


def get_session() -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
