"""Core HR Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Response / *Detail → response bodies (read)
  - *Brief / *ListItem → compact read representations
"""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    convention_hours: Optional[int] = Field(None, ge=0, le=8784)


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    convention_hours: Optional[int] = Field(None, ge=0, le=8784)
    is_active: Optional[bool] = None


class DepartmentResponse(BaseModel):
    """Full department representation."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    convention_hours: Optional[int] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime
    # Enriched fields (set by service layer)
    employee_count: int = 0


class DepartmentBrief(BaseModel):
    """Minimal department info embedded in other responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str


# ═════════════════════════════════════════════════════════════════════
# Role
# ═════════════════════════════════════════════════════════════════════


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None


class RoleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    employee_count: int = 0


class RoleBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str


# ═════════════════════════════════════════════════════════════════════
# Employee — write schemas
# ═════════════════════════════════════════════════════════════════════


class EmployeeCreate(BaseModel):
    """Payload for creating a new employee."""

    employee_code: str = Field(..., min_length=1, max_length=20)
    dni: Optional[str] = Field(None, max_length=20)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    department_id: Optional[uuid.UUID] = None
    role_id: Optional[uuid.UUID] = None
    hire_date: date
    convention_hours: Optional[int] = Field(None, ge=0, le=8784)


class EmployeeUpdate(BaseModel):
    """Partial-update payload for an employee (all fields optional)."""

    employee_code: Optional[str] = Field(None, min_length=1, max_length=20)
    dni: Optional[str] = Field(None, max_length=20)
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    department_id: Optional[uuid.UUID] = None
    role_id: Optional[uuid.UUID] = None
    hire_date: Optional[date] = None
    convention_hours: Optional[int] = Field(None, ge=0, le=8784)
    is_active: Optional[bool] = None


# ═════════════════════════════════════════════════════════════════════
# Employee — read schemas
# ═════════════════════════════════════════════════════════════════════


class EmployeeSummary(BaseModel):
    """Minimal employee reference (copy targets, report rows, etc.)."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    full_name: str


class EmployeeListItem(BaseModel):
    """Compact employee row for paginated list endpoints."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    first_name: str
    last_name: str
    full_name: str
    email: str
    hire_date: date
    is_active: bool
    department: Optional[DepartmentBrief] = None
    role: Optional[RoleBrief] = None


class EmployeeDetail(BaseModel):
    """Full employee record — returned by GET /employees/{id}."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    dni: Optional[str] = None
    first_name: str
    last_name: str
    full_name: str
    email: str
    department_id: Optional[uuid.UUID] = None
    role_id: Optional[uuid.UUID] = None
    department: Optional[DepartmentBrief] = None
    role: Optional[RoleBrief] = None
    hire_date: date
    convention_hours: Optional[int] = None
    effective_convention_hours: int
    is_active: bool
    created_at: datetime
    updated_at: datetime
