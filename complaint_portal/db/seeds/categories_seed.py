from sqlalchemy import select, func
from sqlalchemy.orm import Session

from complaint_portal.db.models import Category
from complaint_portal.utils.logging import get_logger

logger = get_logger()

DEFAULT_CATEGORIES = [
    ("Academic", "Issues related to lectures, grades, etc."),
    ("Facilities", "Hostel, classroom, or infrastructure issues."),
    ("Administrative", "Registration, fees, and paperwork."),
    ("Security", "Safety concerns and reports."),
]


def seed_categories(db_session: Session, organization_id: str) -> int:
    """Add the default categories to an organization that has none."""
    existing = db_session.execute(
        select(func.count(Category.id)).where(
            Category.organization_id == organization_id
        )
    ).scalar()

    if existing:
        logger.info(f"Found {existing} categories, skipping category seed")
        return 0

    categories = [
        Category(name=name, description=description, organization_id=organization_id)
        for name, description in DEFAULT_CATEGORIES
    ]
    db_session.add_all(categories)
    db_session.commit()
    logger.info(f"Seeded {len(categories)} categories")
    return len(categories)
