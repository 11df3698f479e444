import sys

from loguru import logger
from sqlmodel import Session, SQLModel

from app.core.config import settings
from app.db.core import engine
from app.services.auth import TokenService
from app.services.ownership import OwnershipGuard


def seed_administrator(session: Session, account: str) -> str:
    """Installs the administrator if none exists. Returns the current one."""
    logger.info("--- Seeding Administrator ---")
    handle = OwnershipGuard(session).bootstrap(account)
    if handle.account != account:
        logger.warning(
            f"Administrator already set to {handle.account}; {account} was not installed.")
    return handle.account


def main():
    account = sys.argv[1] if len(sys.argv) > 1 else settings.bootstrap_administrator
    if not account:
        logger.error("Usage: python seed.py <administrator-account>")
        raise SystemExit(1)

    # Ensure tables exist (if not using Alembic)
    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        try:
            administrator = seed_administrator(session, account)
        except Exception as e:
            session.rollback()
            logger.error(f"Seeding failed: {e}")
            raise e

    token = TokenService().issue(administrator)
    logger.info("Database seeding completed successfully.")
    print(f"Administrator: {administrator}")
    print(f"Access token:  {token.access_token}")


if __name__ == "__main__":
    main()
