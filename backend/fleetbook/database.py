from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from fleetbook.config import settings


def _build_engine(database_url: str):
    url = str(database_url).strip()
    if url.lower().startswith("sqlite"):
        # In-memory SQLite must share one connection across threads, otherwise
        # every background handler would see an empty database.
        if ":memory:" in url:
            return create_engine(
                url,
                echo=settings.db_echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(
            url,
            echo=settings.db_echo,
            pool_pre_ping=True,
            connect_args={"check_same_thread": False},
        )
    return create_engine(url, echo=settings.db_echo, pool_pre_ping=True)


engine = _build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

Base = declarative_base()


def configure_engine(database_url: str) -> None:
    """Rebind the module-level engine and session factory (used by tests and the CLI)."""
    global engine
    engine = _build_engine(database_url)
    SessionLocal.configure(bind=engine)


def init_db() -> None:
    from fleetbook import models  # noqa: F401  # ensure models are registered

    Base.metadata.create_all(bind=engine)
