from contextlib import contextmanager
from typing import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, declarative_base, scoped_session, sessionmaker

from .settings import Settings, get_settings


def build_engine(settings: Settings) -> Engine:
    # SQL echo follows the application log level.
    return create_engine(settings.database_url, echo=settings.log_level == "DEBUG", future=True)


engine = build_engine(get_settings())
SessionLocal = scoped_session(sessionmaker(bind=engine, autoflush=False, expire_on_commit=False))
Base = declarative_base()


def init_db() -> None:
    Base.metadata.create_all(bind=engine)


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Transactional scope for one unit of work.

    Scheduler ticks run on executor threads, so the thread-local session is
    discarded on exit rather than kept for the next tick on that thread.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        SessionLocal.remove()
