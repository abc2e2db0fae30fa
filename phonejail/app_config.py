import logging
import os
from typing import Callable

from dotenv import load_dotenv
from google.oauth2 import service_account
from google.auth import default as google_auth_default
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from phonejail.entities import Base

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger("phonejail")

# --- Configuration ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///phonejail.db")

JAILKEEPER_MODEL = os.getenv("JAILKEEPER_MODEL", "gpt-4o-mini")
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "30"))

# Only used when JAILKEEPER_MODEL is a Vertex model
PROJECT_ID = os.getenv("GOOGLE_CLOUD_PROJECT", "your-project-id")
REGION = os.getenv("GOOGLE_CLOUD_REGION", "us-central1")

JAILKEEPER_CODEWORD = os.getenv("JAILKEEPER_CODEWORD") or "UNLOCK-PHOENIX-7741"
PERSONALITY_CONFIG_PATH = os.getenv("PERSONALITY_CONFIG_PATH")


def build_google_creds():
    key_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    scopes = ["https://www.googleapis.com/auth/cloud-platform"]
    if key_path and os.path.exists(key_path):
        return service_account.Credentials.from_service_account_file(key_path, scopes=scopes)
    creds, _ = google_auth_default(scopes=scopes)
    return creds


def get_db_engine(url: str | None = None):
    url = url or DATABASE_URL
    logger.info("[DB] Using database: %s", url.split("@")[-1])

    if url in ("sqlite://", "sqlite:///:memory:"):
        # in-memory: every session must see the same connection
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})

    return create_engine(url, pool_pre_ping=True)


def create_session_factory(url: str | None = None) -> Callable[[], Session]:
    engine = get_db_engine(url)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
