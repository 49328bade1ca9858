"""
Main seeding file that orchestrates all database seeding operations.

Seeds are idempotent: an organization is looked up by name before it is
created, and lookup tables are only filled when they are empty.
"""

from complaint_portal.db.session import SessionLocal
from complaint_portal.utils.logging import get_logger

from .organizations_seed import seed_organization
from .categories_seed import seed_categories
from .departments_seed import seed_departments

logger = get_logger()


def seed_all_data(organization_name: str):
    """Seed one organization with its default categories and departments."""

    db_session = SessionLocal()
    try:
        logger.info("Starting database seeding...")

        organization = seed_organization(db_session, organization_name)
        seed_categories(db_session, organization.id)
        seed_departments(db_session, organization.id)

        logger.info("Database seeding completed successfully!")
        return True

    except Exception as e:
        logger.error(f"Database seeding failed: {str(e)}")
        db_session.rollback()
        raise e
    finally:
        db_session.close()
