from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from hovenier.core.settings import settings

Base = declarative_base()


def make_engine(url: str):
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False  # nodig voor SQLite met FastAPI threads
    return create_engine(url, connect_args=connect_args)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
