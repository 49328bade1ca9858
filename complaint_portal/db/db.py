import argparse

from .models import Base
from .seeds.main import seed_all_data
from .session import engine

from complaint_portal.utils.logging import get_logger

logger = get_logger()


def create_tables():
    """Create any missing tables. Existing tables are left untouched."""
    Base.metadata.create_all(engine)
    logger.info(f"Ensured {len(Base.metadata.tables)} tables exist.")


def drop_tables():
    Base.metadata.drop_all(engine)
    logger.info("Dropped all tables.")


def reset_db(organization_name: str, seed: bool = True):
    logger.info("Resetting database...")
    drop_tables()
    create_tables()
    if seed:
        seed_all_data(organization_name)
    logger.info("Database reset complete.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Manage the complaints database")
    parser.add_argument("command", choices=["create", "reset", "seed"])
    parser.add_argument("--organization", default="Demo University")
    args = parser.parse_args()

    if args.command == "create":
        create_tables()
    elif args.command == "reset":
        reset_db(args.organization)
    else:
        seed_all_data(args.organization)
