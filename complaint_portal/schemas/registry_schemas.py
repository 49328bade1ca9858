from typing import Optional
from pydantic import Field

from .camel_base_model import CamelCaseBaseModel as BaseModel


class AdminSummary(BaseModel):
    id: str
    full_name: str
    email: str
    department: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None


class CategoryResponse(BaseModel):
    """Response schema for category data"""

    id: str = Field(..., description="Category ID")
    name: str = Field(..., description="Category name")
    description: Optional[str] = Field(None, description="Category description")
    organization_id: Optional[str] = Field(None, description="Organization ID")
    admin_id: Optional[str] = Field(None, description="Responsible admin ID")
    admin: Optional[AdminSummary] = Field(None, description="Responsible admin")


class CreateCategoryRequest(BaseModel):
    """Request schema for creating a category"""

    name: str = Field(..., min_length=1, max_length=200, description="Category name")
    description: Optional[str] = Field(None, description="Category description")


class AssignCategoryAdminRequest(BaseModel):
    """Assign (or clear with null) the admin responsible for a category"""

    category_id: str = Field(..., description="Category ID")
    admin_id: Optional[str] = Field(None, description="Admin ID, null to unassign")


class DepartmentResponse(BaseModel):
    id: str = Field(..., description="Department ID")
    name: str = Field(..., description="Department name")
    description: Optional[str] = Field(None, description="Department description")
    organization_id: Optional[str] = Field(None, description="Organization ID")


class CreateDepartmentRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Department name")
    description: Optional[str] = Field(None, description="Department description")


class OrganizationResponse(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class UpdateOrganizationRequest(BaseModel):
    """Contact fields of the organization; omitted fields are left unchanged"""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=320)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
