from typing import List, Optional

from fastapi import Depends
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from complaint_portal.db.models import Admin, Category, Complaint
from complaint_portal.db.session import get_sync_session
from complaint_portal.schemas.registry_schemas import (
    AdminSummary,
    AssignCategoryAdminRequest,
    CategoryResponse,
    CreateCategoryRequest,
)
from complaint_portal.services.access_policy import Action, CallerContext, authorize
from complaint_portal.services.activity_service import ActivityService
from complaint_portal.utils.errors import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    ValidationFailedError,
)
from complaint_portal.utils.logging import get_logger

logger = get_logger()


class CategoryService:
    """Organization-scoped complaint categories and their responsible admins"""

    def __init__(self, db_session: Session):
        self.db = db_session
        self.activity = ActivityService(db_session)

    async def get_category_by_id(
        self, caller: CallerContext, category_id: str
    ) -> Category:
        """Get a category of the caller's organization or raise NotFoundError"""
        category = self.db.get(Category, category_id)
        if not category or category.organization_id != caller.organization_id:
            raise NotFoundError("Category not found", "CATEGORY_NOT_FOUND")
        return category

    async def check_category_name_exists(
        self, organization_id: Optional[str], name: str
    ) -> bool:
        result = self.db.execute(
            select(Category.id).where(
                Category.organization_id == organization_id,
                Category.name == name,
            )
        )
        return result.first() is not None

    async def list_categories(
        self, caller: CallerContext, include_admins: bool = False
    ) -> List[CategoryResponse]:
        authorize(caller, Action.VIEW_REGISTRY)

        stmt = (
            select(Category)
            .where(Category.organization_id == caller.organization_id)
            .order_by(Category.name)
        )
        if include_admins:
            stmt = stmt.options(selectinload(Category.admin))

        categories = self.db.execute(stmt).scalars().all()
        return [
            self._create_category_response(category, include_admins)
            for category in categories
        ]

    async def create_category(
        self, caller: CallerContext, request: CreateCategoryRequest
    ) -> CategoryResponse:
        authorize(caller, Action.MANAGE_CATEGORIES)

        name = request.name.strip()
        if not name:
            raise ValidationFailedError("Category name is required", "MISSING_FIELDS")

        if await self.check_category_name_exists(caller.organization_id, name):
            raise ConflictError("Category already exists", "CATEGORY_EXISTS")

        category = Category(
            name=name,
            description=request.description,
            organization_id=caller.organization_id,
        )
        try:
            self.db.add(category)
            self.activity.record(caller, "CATEGORY_CREATED", f"Created category {name}")
            self.db.commit()
            self.db.refresh(category)
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Category already exists", "CATEGORY_EXISTS")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create category '{name}': {e}")
            raise DatabaseError("Failed to create category", "CATEGORY_CREATE_FAILED")

        logger.info(f"Created category {category.id} ({name})")
        return self._create_category_response(category)

    async def assign_admin(
        self, caller: CallerContext, request: AssignCategoryAdminRequest
    ) -> CategoryResponse:
        """
        Set or clear the admin responsible for a category.

        Complaints already filed keep the admin they were routed to.
        """
        authorize(caller, Action.MANAGE_CATEGORIES)

        category = await self.get_category_by_id(caller, request.category_id)

        admin = None
        if request.admin_id:
            admin = self.db.get(Admin, request.admin_id)
            if not admin or admin.user.organization_id != caller.organization_id:
                raise NotFoundError("Admin not found", "ADMIN_NOT_FOUND")

        try:
            category.admin_id = admin.id if admin else None
            self.activity.record(
                caller,
                "CATEGORY_ADMIN_ASSIGNED",
                f"{category.name} assigned to {admin.full_name if admin else 'nobody'}",
            )
            self.db.commit()
            self.db.refresh(category)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to assign admin to category {category.id}: {e}")
            raise DatabaseError("Failed to update category", "CATEGORY_UPDATE_FAILED")

        return self._create_category_response(category, include_admin=True)

    async def delete_category(self, caller: CallerContext, category_id: str) -> int:
        """Delete a category; its complaints are detached, never deleted"""
        authorize(caller, Action.MANAGE_CATEGORIES)

        category = await self.get_category_by_id(caller, category_id)

        try:
            detached = self.db.execute(
                update(Complaint)
                .where(Complaint.category_id == category.id)
                .values(category_id=None)
            ).rowcount
            self.activity.record(
                caller, "CATEGORY_DELETED", f"Deleted category {category.name}"
            )
            self.db.delete(category)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete category {category_id}: {e}")
            raise DatabaseError("Failed to delete category", "CATEGORY_DELETE_FAILED")

        logger.info(f"Deleted category {category_id}, detached {detached} complaints")
        return detached

    @staticmethod
    def _create_category_response(
        category: Category, include_admin: bool = False
    ) -> CategoryResponse:
        admin = None
        if include_admin and category.admin:
            admin = AdminSummary.model_validate(category.admin)

        return CategoryResponse(
            id=category.id,
            name=category.name,
            description=category.description,
            organization_id=category.organization_id,
            admin_id=category.admin_id,
            admin=admin,
        )


def get_category_service(
    db: Session = Depends(get_sync_session),
) -> CategoryService:
    """Dependency to provide CategoryService instance"""
    return CategoryService(db)
