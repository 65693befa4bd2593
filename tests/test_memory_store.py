"""Tests for the in-memory concept store."""

import pytest

from access_control.errors import ConflictError, NotFoundError
from access_control.store.memory import MemoryMetadataDb
from access_control.store.protocols import ACCESS_GROUP, ACL, MetadataDb


@pytest.fixture
def db():
    db = MemoryMetadataDb()
    db.add_provider("PROV1")
    db.add_collection("PROV1", "coll1", version="1")
    return db


def test_satisfies_protocol(db):
    assert isinstance(db, MetadataDb)


@pytest.mark.asyncio
async def test_providers_and_collections(db):
    db.add_provider("PROV1")
    assert await db.get_providers() == ["PROV1"]
    assert await db.provider_exists("PROV1")
    assert not await db.provider_exists("PROV2")
    assert await db.find_collections("PROV1", "coll1") == [
        {"provider_id": "PROV1", "entry_title": "coll1", "version": "1"}
    ]
    assert not await db.collection_exists("PROV2", "coll1")


@pytest.mark.asyncio
async def test_concept_ids_and_revisions(db):
    group = await db.save_concept(ACCESS_GROUP, "CMR", "admins", {"name": "Admins"}, user_id="u1")
    acl = await db.save_concept(ACL, "PROV1", "uuid-1", {})
    assert group.concept_id == "AG1200000001-CMR"
    assert acl.concept_id == "ACL1200000002-PROV1"

    second = await db.save_concept(ACCESS_GROUP, "CMR", "admins", {"name": "Admins!"}, concept_id=group.concept_id)
    assert second.revision_id == 2
    assert (await db.get_latest_concept(group.concept_id)).metadata == {"name": "Admins!"}


@pytest.mark.asyncio
async def test_native_id_conflict(db):
    await db.save_concept(ACCESS_GROUP, "CMR", "admins", {})
    with pytest.raises(ConflictError, match=r"native id \[admins\]"):
        await db.save_concept(ACCESS_GROUP, "CMR", "admins", {})
    # Native ids are scoped to provider and concept type
    await db.save_concept(ACCESS_GROUP, "PROV1", "admins", {})
    await db.save_concept(ACL, "CMR", "admins", {})


@pytest.mark.asyncio
async def test_unknown_concept_id(db):
    with pytest.raises(NotFoundError):
        await db.save_concept(ACL, "CMR", "x", {}, concept_id="ACL9-CMR")


@pytest.mark.asyncio
async def test_tombstones(db):
    saved = await db.save_concept(ACL, "PROV1", "uuid-1", {"a": 1})
    tombstone = await db.delete_concept(saved.concept_id, user_id="u1")

    assert tombstone.deleted
    assert tombstone.metadata is None
    assert tombstone.revision_id == 2
    assert await db.find_latest_concepts(ACL) == []
    with pytest.raises(NotFoundError):
        await db.delete_concept(saved.concept_id)


@pytest.mark.asyncio
async def test_find_latest_concepts(db):
    a = await db.save_concept(ACL, "PROV1", "a", {"rev": 1})
    await db.save_concept(ACL, "PROV1", "a", {"rev": 2}, concept_id=a.concept_id)
    await db.save_concept(ACCESS_GROUP, "CMR", "g", {})

    latest = await db.find_latest_concepts(ACL)
    assert [(c.concept_id, c.metadata) for c in latest] == [(a.concept_id, {"rev": 2})]


@pytest.mark.asyncio
async def test_reset(db):
    await db.save_concept(ACL, "PROV1", "a", {})
    db.reset()
    assert await db.get_providers() == []
    assert (await db.save_concept(ACL, "PROV1", "a", {})).concept_id == "ACL1200000001-PROV1"
