from sqlalchemy import select, func
from sqlalchemy.orm import Session

from complaint_portal.db.models import Department
from complaint_portal.utils.logging import get_logger

logger = get_logger()

DEFAULT_DEPARTMENTS = [
    "Computer Science",
    "Engineering",
    "Business Administration",
    "Medicine",
    "Law",
]


def seed_departments(db_session: Session, organization_id: str) -> int:
    existing = db_session.execute(
        select(func.count(Department.id)).where(
            Department.organization_id == organization_id
        )
    ).scalar()

    if existing:
        logger.info(f"Found {existing} departments, skipping department seed")
        return 0

    departments = [
        Department(name=name, organization_id=organization_id)
        for name in DEFAULT_DEPARTMENTS
    ]
    db_session.add_all(departments)
    db_session.commit()
    logger.info(f"Seeded {len(departments)} departments")
    return len(departments)
