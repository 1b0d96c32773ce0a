"""Core HR module — Employee, Department, Role models, schemas and services."""

from backend.core_hr.models import Department, Employee, Role

__all__ = ["Employee", "Department", "Role"]
