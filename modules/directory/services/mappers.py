"""
Record <-> document field mapping.

Explicit mapping functions per entity. Remote payloads are tolerated
field-by-field: a missing or mistyped field becomes ``""`` (text) or ``False``
(flags) instead of failing the document.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from core.database.base import Base
from modules.directory.core.config import DirectorySettings
from modules.directory.models import Employee, Municipality, Project, RegionalInfo


class EntityKind(str, Enum):
    """Synchronized collections. Values are the names used in URLs and logs."""

    EMPLOYEE = "employees"
    MUNICIPALITY = "municipalities"
    REGIONAL_INFO = "regional_info"


# =============================================================================
# Payload helpers
# =============================================================================


def text_field(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def flag_field(data: Dict[str, Any], key: str) -> bool:
    value = data.get(key)
    return value if isinstance(value, bool) else False


def image_url_field(data: Dict[str, Any]) -> Optional[str]:
    """``imageURL``, falling back to the legacy ``imagemURL`` spelling."""
    for key in ("imageURL", "imagemURL"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


# =============================================================================
# Employee
# =============================================================================


def project_to_document(project: Project) -> Dict[str, Any]:
    return {
        "nome": project.name or "",
        "status": project.status or "",
        "descricao": project.description or "",
    }


def employee_to_document(employee: Employee) -> Dict[str, Any]:
    """
    Build the ``employees/{id}`` payload (without ``imageURL``).

    ``cargo`` duplicates ``funcao`` for clients still reading the old field.
    """
    return {
        "nome": employee.name or "",
        "funcao": employee.role or "",
        "cargo": employee.role or "",
        "favorito": bool(employee.favorite),
        "regional": employee.region or "",
        "ramal": employee.extension or "",
        "celular": employee.mobile or "",
        "email": employee.email or "",
        "projetos": [project_to_document(p) for p in employee.projects],
    }


def apply_projects(employee: Employee, items: Any) -> None:
    """
    Upsert projects keyed by ``name|status``; drop local ones not present remotely.
    """
    incoming: Dict[str, Dict[str, str]] = {}
    if isinstance(items, list):
        for item in items:
            if not isinstance(item, dict):
                continue
            name = text_field(item, "nome")
            status = text_field(item, "status")
            incoming[f"{name}|{status}"] = {
                "name": name,
                "status": status,
                "description": text_field(item, "descricao"),
            }

    existing = {project.upsert_key: project for project in employee.projects}

    for key, project in existing.items():
        if key not in incoming:
            employee.projects.remove(project)

    for key, values in incoming.items():
        project = existing.get(key)
        if project is None:
            employee.projects.append(Project(**values))
        else:
            project.description = values["description"]


def apply_employee_document(employee: Employee, data: Dict[str, Any]) -> None:
    """Overwrite every mirrored field from the remote payload (remote wins)."""
    employee.name = text_field(data, "nome")
    employee.role = text_field(data, "funcao") or text_field(data, "cargo")
    employee.extension = text_field(data, "ramal")
    employee.mobile = text_field(data, "celular")
    employee.email = text_field(data, "email")
    employee.favorite = flag_field(data, "favorito")
    employee.region = text_field(data, "regional")
    employee.photo_url = image_url_field(data)
    apply_projects(employee, data.get("projetos"))


# =============================================================================
# Municipality
# =============================================================================


def municipality_to_document(municipality: Municipality) -> Dict[str, Any]:
    return {
        "nome": municipality.name or "",
        "regional": municipality.region or "",
        "favorito": bool(municipality.favorite),
    }


def apply_municipality_document(municipality: Municipality, data: Dict[str, Any]) -> None:
    municipality.name = text_field(data, "nome")
    municipality.region = text_field(data, "regional")
    municipality.favorite = flag_field(data, "favorito")


# =============================================================================
# RegionalInfo
# =============================================================================


def regional_info_to_document(info: RegionalInfo) -> Dict[str, Any]:
    return {
        "nome": info.name or "",
        "chefe": info.chief or "",
        "ramal": info.extension or "",
        "endereco": info.address or "",
    }


def apply_regional_info_document(info: RegionalInfo, data: Dict[str, Any]) -> None:
    info.name = text_field(data, "nome")
    info.chief = text_field(data, "chefe")
    info.extension = text_field(data, "ramal")
    info.address = text_field(data, "endereco")


# =============================================================================
# Collection specs
# =============================================================================


@dataclass(frozen=True)
class CollectionSpec:
    """How one entity kind maps onto its remote collection."""

    kind: EntityKind
    model: Type[Base]
    to_document: Callable[[Any], Dict[str, Any]]
    apply_document: Callable[[Any, Dict[str, Any]], None]
    has_attachment: bool = False
    # Relationships read or written by the mapping functions
    relations: Tuple[str, ...] = ()


COLLECTION_SPECS: Dict[EntityKind, CollectionSpec] = {
    EntityKind.EMPLOYEE: CollectionSpec(
        kind=EntityKind.EMPLOYEE,
        model=Employee,
        to_document=employee_to_document,
        apply_document=apply_employee_document,
        has_attachment=True,
        relations=("projects",),
    ),
    EntityKind.MUNICIPALITY: CollectionSpec(
        kind=EntityKind.MUNICIPALITY,
        model=Municipality,
        to_document=municipality_to_document,
        apply_document=apply_municipality_document,
    ),
    EntityKind.REGIONAL_INFO: CollectionSpec(
        kind=EntityKind.REGIONAL_INFO,
        model=RegionalInfo,
        to_document=regional_info_to_document,
        apply_document=apply_regional_info_document,
    ),
}


def collection_name(kind: EntityKind, settings: DirectorySettings) -> str:
    """Remote collection name for an entity kind."""
    names: Dict[EntityKind, str] = {
        EntityKind.EMPLOYEE: settings.employees_collection,
        EntityKind.MUNICIPALITY: settings.municipalities_collection,
        EntityKind.REGIONAL_INFO: settings.regional_info_collection,
    }
    return names[kind]


def parse_kind(value: str) -> Optional[EntityKind]:
    """Parse a URL segment into an EntityKind (``employees``, ``municipalities``...)."""
    try:
        return EntityKind(value)
    except ValueError:
        return None
