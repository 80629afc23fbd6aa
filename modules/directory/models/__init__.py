"""
Directory Module Database Models.

Contains SQLAlchemy models for the local working copy of the directory.
"""

from modules.directory.models.employee import Employee
from modules.directory.models.municipality import Municipality
from modules.directory.models.project import Project, ProjectStatus
from modules.directory.models.regional_info import RegionalInfo, regional_key

__all__ = [
    "Employee",
    "Project",
    "ProjectStatus",
    "Municipality",
    "RegionalInfo",
    "regional_key",
]
