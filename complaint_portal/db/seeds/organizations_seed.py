from sqlalchemy import select
from sqlalchemy.orm import Session

from complaint_portal.db.models import Organization
from complaint_portal.utils.logging import get_logger

logger = get_logger()


def seed_organization(db_session: Session, name: str) -> Organization:
    """Return the organization called `name`, creating it when missing."""
    organization = db_session.execute(
        select(Organization).where(Organization.name == name)
    ).scalar_one_or_none()

    if organization:
        logger.info(f"Organization '{name}' already exists")
        return organization

    organization = Organization(name=name)
    db_session.add(organization)
    db_session.commit()
    db_session.refresh(organization)
    logger.info(f"Seeded organization '{name}'")
    return organization
