import os
from pathlib import Path
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

# Force-load .env (Windows-safe, reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set. Check your .env file.")


def sqlite_connect_args(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {}
    # Webhook and poll writers for the same team wait on each other's lock.
    return {"check_same_thread": False, "timeout": 15}


engine = create_engine(DATABASE_URL, connect_args=sqlite_connect_args(DATABASE_URL))

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
Base = declarative_base()


def init_db(bind=None):
    """Create the payment tables if they do not exist yet."""
    from app import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
