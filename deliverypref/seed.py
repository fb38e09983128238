# deliverypref/seed.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from .auth import PasswordHasher
from .config import Settings, load_settings
from .db import build_engine, build_session_factory, init_db
from .models import User

logger = logging.getLogger(__name__)


def seed_demo_user(db: Session, settings: Settings, passwords: Optional[PasswordHasher] = None) -> User:
    """Create the demo login unless it already exists. Returns the user either way."""
    existing = db.query(User).filter(User.email == settings.seed_email).first()
    if existing:
        logger.info(f"Seed user {settings.seed_email} already exists. Skipping creation.")
        return existing

    passwords = passwords or PasswordHasher()
    u = User(
        email=settings.seed_email,
        name="Demo User",
        password_hash=passwords.hash(settings.seed_password),
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    logger.info(f"Seed user created ({settings.seed_email})")
    return u


def main() -> None:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    engine = build_engine(settings)
    try:
        init_db(engine)
        with build_session_factory(engine)() as db:
            seed_demo_user(db, settings)
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
