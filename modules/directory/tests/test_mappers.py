"""
Tests for record <-> document field mapping.
"""

import pytest

from modules.directory.core.config import DirectorySettings
from modules.directory.models import Employee, Municipality, Project, RegionalInfo
from modules.directory.services.mappers import (
    COLLECTION_SPECS,
    EntityKind,
    apply_employee_document,
    apply_municipality_document,
    apply_projects,
    apply_regional_info_document,
    collection_name,
    employee_to_document,
    flag_field,
    image_url_field,
    municipality_to_document,
    parse_kind,
    regional_info_to_document,
    text_field,
)


class TestFieldHelpers:

    @pytest.mark.parametrize("value,expected", [
        ("Ana", "Ana"),
        (1234, "1234"),
        (None, ""),
        (True, ""),
        (["x"], ""),
    ])
    def test_text_field(self, value, expected):
        assert text_field({"k": value}, "k") == expected

    def test_text_field_missing(self):
        assert text_field({}, "nome") == ""

    @pytest.mark.parametrize("value,expected", [(True, True), (False, False), ("true", False), (1, False)])
    def test_flag_field(self, value, expected):
        assert flag_field({"favorito": value}, "favorito") is expected

    def test_image_url_prefers_current_spelling(self):
        assert image_url_field({"imageURL": "a", "imagemURL": "b"}) == "a"
        assert image_url_field({"imagemURL": "b"}) == "b"
        assert image_url_field({"imageURL": "  "}) is None
        assert image_url_field({}) is None


class TestEmployeeMapping:

    def test_to_document(self):
        employee = Employee(
            name="Ana",
            role="Chefe",
            extension="123",
            mobile="9999",
            email="ana@example.com",
            region="Curitiba",
            favorite=True,
            projects=[Project(name="Portal", status="Em andamento", description="")],
        )

        document = employee_to_document(employee)

        assert document == {
            "nome": "Ana",
            "funcao": "Chefe",
            "cargo": "Chefe",
            "favorito": True,
            "regional": "Curitiba",
            "ramal": "123",
            "celular": "9999",
            "email": "ana@example.com",
            "projetos": [{"nome": "Portal", "status": "Em andamento", "descricao": ""}],
        }
        assert "imageURL" not in document

    def test_apply_document_overwrites_every_field(self):
        employee = Employee(name="Old", role="Old", email="old@example.com", projects=[])

        apply_employee_document(employee, {
            "nome": "Ana",
            "cargo": "Analista",
            "ramal": 321,
            "favorito": True,
            "regional": "Londrina",
            "imagemURL": "https://blobs.test/a.jpg",
        })

        assert employee.name == "Ana"
        assert employee.role == "Analista"
        assert employee.extension == "321"
        assert employee.email == ""
        assert employee.mobile == ""
        assert employee.favorite is True
        assert employee.region == "Londrina"
        assert employee.photo_url == "https://blobs.test/a.jpg"

    def test_funcao_wins_over_cargo(self):
        employee = Employee(projects=[])

        apply_employee_document(employee, {"funcao": "Chefe", "cargo": "Analista"})

        assert employee.role == "Chefe"

    def test_malformed_payload_defaults_field_by_field(self):
        employee = Employee(projects=[])

        apply_employee_document(employee, {"nome": {"nested": True}, "favorito": "yes", "projetos": "oops"})

        assert employee.name == ""
        assert employee.favorite is False
        assert employee.projects == []


class TestApplyProjects:

    def test_upsert_by_name_and_status(self):
        kept = Project(name="Portal", status="Em andamento", description="old")
        dropped = Project(name="Legado", status="Finalizado", description="")
        employee = Employee(projects=[kept, dropped])

        apply_projects(employee, [
            {"nome": "Portal", "status": "Em andamento", "descricao": "new"},
            {"nome": "Portal", "status": "Finalizado"},
            "not-a-project",
        ])

        keys = sorted(project.upsert_key for project in employee.projects)
        assert keys == ["Portal|Em andamento", "Portal|Finalizado"]
        assert kept in employee.projects
        assert kept.description == "new"
        assert dropped not in employee.projects

    def test_unknown_status_is_kept_verbatim(self):
        employee = Employee(projects=[])

        apply_projects(employee, [{"nome": "X", "status": "Pausado"}])

        assert employee.projects[0].status == "Pausado"


class TestOtherEntities:

    def test_municipality(self):
        municipality = Municipality(name="Curitiba", region="Curitiba", favorite=False)
        document = municipality_to_document(municipality)
        assert document == {"nome": "Curitiba", "regional": "Curitiba", "favorito": False}

        copy = Municipality()
        apply_municipality_document(copy, document)
        assert (copy.name, copy.region, copy.favorite) == ("Curitiba", "Curitiba", False)

    def test_regional_info(self):
        info = RegionalInfo(name="Regional Norte", chief="Ana", extension="100", address="Rua A")
        document = regional_info_to_document(info)
        assert document == {"nome": "Regional Norte", "chefe": "Ana", "ramal": "100", "endereco": "Rua A"}

        copy = RegionalInfo()
        apply_regional_info_document(copy, document)
        assert copy.composite_key == ("regional norte", "100")


class TestCollections:

    def test_collection_names_follow_settings(self):
        settings = DirectorySettings(municipalities_collection="cities")

        assert collection_name(EntityKind.EMPLOYEE, settings) == "employees"
        assert collection_name(EntityKind.MUNICIPALITY, settings) == "cities"
        assert collection_name(EntityKind.REGIONAL_INFO, settings) == "regionalInfo"

    def test_only_employees_carry_attachments(self):
        assert [kind for kind, spec in COLLECTION_SPECS.items() if spec.has_attachment] == [EntityKind.EMPLOYEE]

    @pytest.mark.parametrize("value,expected", [
        ("employees", EntityKind.EMPLOYEE),
        ("municipalities", EntityKind.MUNICIPALITY),
        ("regional_info", EntityKind.REGIONAL_INFO),
        ("municipios", None),
        ("", None),
    ])
    def test_parse_kind(self, value, expected):
        assert parse_kind(value) is expected
