from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

from image_gateway.config import DATABASE_URL

if not DATABASE_URL:
    raise ValueError("DATABASE_URL env variable is not set")


def engine_options(database_url):
    """Sync endpoints run on the threadpool, so SQLite connections must be shareable."""
    if make_url(database_url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(DATABASE_URL, **engine_options(DATABASE_URL))

SQLAlchemyInstrumentor().instrument(
    engine=engine,
    enable_commenter=True,
    commenter_options={},
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind=None):
    """Create the users and generations tables if they are missing."""
    # registers User and Generation on Base.metadata
    from image_gateway import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
