"""
Tests for IdentityResolver.
"""

import uuid

import pytest

from core.remote.documents import RemoteDocument
from modules.directory.models import Employee, Municipality, RegionalInfo
from modules.directory.services.identity import IdentityResolver, parse_uuid, safe_document_id
from modules.directory.services.mappers import EntityKind


@pytest.fixture
def resolver():
    return IdentityResolver()


async def resolve(store, resolver, kind, doc_id, data):
    async def work(session):
        return await resolver.resolve(session, kind, RemoteDocument(doc_id, data))

    return await store.perform(work)


class TestHelpers:

    def test_parse_uuid_is_case_insensitive(self):
        value = uuid.uuid4()

        assert parse_uuid(str(value).upper()) == value
        assert parse_uuid(str(value).lower()) == value

    @pytest.mark.parametrize("value", [None, "", "abc", "local:__directory_employee_1"])
    def test_parse_uuid_rejects_non_uuid(self, value):
        assert parse_uuid(value) is None

    def test_safe_document_id(self):
        assert safe_document_id("local://directory_employee/3") == "local:__directory_employee_3"


class TestRemoteId:

    def test_uuid_is_upper_case(self, resolver):
        value = uuid.uuid4()
        employee = Employee(uuid=value, projects=[])

        assert resolver.remote_id_for(employee) == str(value).upper()

    @pytest.mark.asyncio
    async def test_fallback_uses_storage_identifier(self, store, resolver):
        employee = await store.insert(Employee(name="Ana", projects=[]))
        info = await store.insert(RegionalInfo(name="Norte", extension="1"))

        assert resolver.remote_id_for(employee) == f"local:__directory_employee_{employee.row_id}"
        assert resolver.remote_id_for(info) == f"local:__directory_regional_info_{info.row_id}"
        assert "/" not in resolver.remote_id_for(info)

    def test_pulled_regional_uses_its_document_id(self, resolver):
        info = RegionalInfo(name="Norte", extension="1", remote_id="abcDocId")

        assert resolver.remote_id_for(info) == "abcDocId"


class TestEmployeeResolution:

    @pytest.mark.asyncio
    async def test_uuid_document_creates_then_matches(self, store, resolver):
        value = uuid.uuid4()

        first = await resolve(store, resolver, EntityKind.EMPLOYEE, str(value).upper(), {"nome": "Ana"})
        second = await resolve(store, resolver, EntityKind.EMPLOYEE, str(value).lower(), {"nome": "Ana"})

        assert first.created is True
        assert second.created is False
        assert second.record is first.record
        assert first.record.uuid == value

    @pytest.mark.asyncio
    async def test_matches_by_image_url(self, store, resolver):
        existing = await store.insert(
            Employee(name="Ana", photo_url="https://blobs.test/a.jpg", projects=[])
        )

        resolution = await resolve(
            store, resolver, EntityKind.EMPLOYEE, "legacy-id",
            {"nome": "Ana Maria", "imagemURL": "https://blobs.test/a.jpg"},
        )

        assert resolution.created is False
        assert resolution.record is existing
        assert resolution.record.uuid is not None

    @pytest.mark.asyncio
    async def test_matches_by_name_and_email(self, store, resolver):
        existing = await store.insert(Employee(name="Ana", email="ana@example.com", projects=[]))
        await store.insert(Employee(name="Ana", email="other@example.com", projects=[]))

        resolution = await resolve(
            store, resolver, EntityKind.EMPLOYEE, "legacy-id",
            {"nome": "Ana", "email": "ana@example.com"},
        )

        assert resolution.record is existing

    @pytest.mark.asyncio
    async def test_unmatched_non_uuid_document_mints_uuid(self, store, resolver):
        resolution = await resolve(
            store, resolver, EntityKind.EMPLOYEE, "legacy-id", {"nome": "Novo", "email": "n@example.com"}
        )

        assert resolution.created is True
        assert isinstance(resolution.record.uuid, uuid.UUID)
        assert resolution.record.row_id is not None

    @pytest.mark.asyncio
    async def test_existing_uuid_is_never_replaced(self, store, resolver):
        value = uuid.uuid4()
        existing = await store.insert(
            Employee(uuid=value, name="Ana", email="ana@example.com", projects=[])
        )

        resolution = await resolve(
            store, resolver, EntityKind.EMPLOYEE, "legacy-id", {"nome": "Ana", "email": "ana@example.com"}
        )

        assert resolution.record is existing
        assert existing.uuid == value


class TestMunicipalityResolution:

    @pytest.mark.asyncio
    async def test_matches_by_name(self, store, resolver):
        existing = await store.insert(Municipality(name="Curitiba", region="Curitiba"))

        resolution = await resolve(store, resolver, EntityKind.MUNICIPALITY, "curitiba", {"nome": "Curitiba"})

        assert resolution.created is False
        assert resolution.record is existing

    @pytest.mark.asyncio
    async def test_uuid_document(self, store, resolver):
        value = uuid.uuid4()

        resolution = await resolve(
            store, resolver, EntityKind.MUNICIPALITY, str(value).upper(), {"nome": "Londrina"}
        )

        assert resolution.created is True
        assert resolution.record.uuid == value


class TestRegionalInfoResolution:

    @pytest.mark.asyncio
    async def test_upsert_keeps_first_and_removes_extras(self, store, resolver):
        first = await store.insert(RegionalInfo(name="Norte", extension="100"))
        await store.insert(RegionalInfo(name=" norte ", extension="100"))
        await store.insert(RegionalInfo(name="NORTE", extension="100 "))
        other = await store.insert(RegionalInfo(name="Sul", extension="100"))

        resolution = await resolve(
            store, resolver, EntityKind.REGIONAL_INFO, "any-id", {"nome": "Norte", "ramal": "100"}
        )

        assert resolution.created is False
        assert resolution.record is first
        assert resolution.removed == 2
        remaining = await store.fetch(RegionalInfo)
        assert [info.row_id for info in remaining] == [first.row_id, other.row_id]

    @pytest.mark.asyncio
    async def test_upsert_creates_when_missing(self, store, resolver):
        resolution = await resolve(
            store, resolver, EntityKind.REGIONAL_INFO, "any-id", {"nome": "Oeste", "ramal": "9"}
        )

        assert resolution.created is True
        assert len(await store.fetch(RegionalInfo)) == 1

    @pytest.mark.asyncio
    async def test_sweep_keeps_one_per_key(self, store, resolver):
        await store.insert(RegionalInfo(name="Norte", extension="1"))
        await store.insert(RegionalInfo(name="norte", extension="1"))
        await store.insert(RegionalInfo(name="Sul", extension="2"))
        await store.insert(RegionalInfo(name="Sul", extension="3"))

        removed = await store.perform(resolver.sweep_regional_duplicates)

        assert removed == 1
        keys = sorted(info.composite_key for info in await store.fetch(RegionalInfo))
        assert keys == [("norte", "1"), ("sul", "2"), ("sul", "3")]

    @pytest.mark.asyncio
    async def test_upsert_links_the_document(self, store, resolver):
        existing = await store.insert(RegionalInfo(name="Norte", extension="10"))

        resolution = await resolve(
            store, resolver, EntityKind.REGIONAL_INFO, "abcDocId", {"nome": "Norte", "ramal": "10"}
        )

        assert resolution.record is existing
        assert existing.remote_id == "abcDocId"

    @pytest.mark.asyncio
    async def test_renamed_office_keeps_linked_record(self, store, resolver):
        linked = await store.insert(RegionalInfo(name="Norte", extension="10", remote_id="abcDocId"))

        resolution = await resolve(
            store, resolver, EntityKind.REGIONAL_INFO, "abcDocId", {"nome": "Norte I", "ramal": "10"}
        )

        assert resolution.created is False
        assert resolution.record is linked
        assert len(await store.fetch(RegionalInfo)) == 1

    @pytest.mark.asyncio
    async def test_sweep_prefers_linked_record(self, store, resolver):
        await store.insert(RegionalInfo(name="Norte", extension="1"))
        linked = await store.insert(RegionalInfo(name="norte", extension="1", remote_id="doc-1"))

        removed = await store.perform(resolver.sweep_regional_duplicates)

        assert removed == 1
        assert await store.fetch(RegionalInfo) == [linked]
