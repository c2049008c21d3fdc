"""
Tests for content-hash deduplication of scripts and photos.
"""

import pytest

from studiobase.errors import DuplicateKeyError, ValidationError
from studiobase.models.base import ContentAddressedReference
from studiobase.models.script import Script
from studiobase.services.dedup import PhotoStore, ScriptStore
from studiobase.services.releases import ReleaseStore

from tests.conftest import sha256

scripts = ScriptStore()
photos = PhotoStore()


class TestScriptDedup:
    async def test_second_upload_of_same_bytes_rejected(self, db, script_data, user_id):
        first = await scripts.create(db, script_data)

        with pytest.raises(DuplicateKeyError) as exc:
            await scripts.create(db, {**script_data, "title": "Another title"})

        assert exc.value.field == "script.contentHash"
        assert exc.value.existing_id == first.id
        owned = await scripts.list_by_owner(db, user_id)
        assert [s.id for s in owned] == [first.id]
        assert (await scripts.get(db, first.id)).title == "The Long Take"

    async def test_collision_leaves_loaded_rows_usable(self, db, script_data, release_data):
        release = await ReleaseStore().create(db, release_data)
        first = await scripts.create(db, script_data)

        with pytest.raises(DuplicateKeyError):
            await scripts.create(db, {**script_data, "title": "Again"})

        # Rows loaded before the collision are read without another round trip
        assert release.name == "Side A"
        assert first.title == "The Long Take"
        assert (await scripts.get(db, first.id)).id == first.id

    async def test_uppercase_hash_stored_lowercase(self, db, script_data):
        digest = script_data["script"]["contentHash"]
        script_data["script"]["contentHash"] = digest.upper()
        created = await scripts.create(db, script_data)
        assert created.script.content_hash == digest
        assert (await scripts.find_by_content_hash(db, digest)).id == created.id

    async def test_find_by_content_hash(self, db, script_data):
        created = await scripts.create(db, script_data)
        found = await scripts.find_by_content_hash(db, script_data["script"]["contentHash"].upper())
        assert found.id == created.id
        assert await scripts.find_by_content_hash(db, sha256(b"unknown")) is None

    async def test_rows_without_hash_do_not_collide(self, db, user_id):
        for name in ("a.pdf", "b.pdf"):
            db.add(Script(
                user=user_id,
                title=name,
                filmmaker="Legacy",
                script=ContentAddressedReference(
                    file_name=name,
                    file_size=1,
                    file_type="application/pdf",
                    file_url=f"https://cdn.example.com/{name}",
                    storage_key=name,
                    content_hash=None,
                ),
            ))
        await scripts.commit(db)
        assert await scripts.count_by_owner(db, user_id) == 2

    async def test_content_hash_immutable(self, db, script_data):
        script = await scripts.create(db, script_data)
        replacement = {**script_data["script"], "contentHash": sha256(b"other")}
        with pytest.raises(ValidationError) as exc:
            await scripts.update(db, script.id, {"script": replacement})
        assert exc.value.field == "script.contentHash"

    async def test_storage_move_with_same_hash_allowed(self, db, script_data):
        script = await scripts.create(db, script_data)
        moved = {**script_data["script"], "storageKey": "archive/long-take.pdf"}
        updated = await scripts.update(db, script.id, {"script": moved, "released": True})
        assert updated.script.storage_key == "archive/long-take.pdf"
        assert updated.released is True

    async def test_user_immutable(self, db, script_data, other_user_id):
        script = await scripts.create(db, script_data)
        with pytest.raises(ValidationError) as exc:
            await scripts.update(db, script.id, {"user": other_user_id})
        assert exc.value.field == "user"


class TestPhotoDedup:
    async def test_second_upload_of_same_bytes_rejected(self, db, photo_data, other_user_id):
        first = await photos.create(db, photo_data)

        with pytest.raises(DuplicateKeyError) as exc:
            await photos.create(db, {**photo_data, "user": other_user_id, "title": "Copy"})

        assert exc.value.field == "image.contentHash"
        assert exc.value.existing_id == first.id
        assert await photos.count_by_owner(db, other_user_id) == 0

    async def test_embedded_values_round_trip(self, db, session_maker, photo_data):
        created = await photos.create(db, photo_data)
        async with session_maker() as other:
            photo = await photos.get(other, created.id)
        assert photo.image.content_hash == photo_data["image"]["contentHash"]
        assert photo.settings.shutter_speed == "1/125"
        assert photo.settings.iso == 100
        assert (photo.width, photo.height) == (6000, 4000)
        assert photo.capture_date is None
        assert photo.upload_status == "processing"

    async def test_category_update_validated(self, db, photo_data):
        photo = await photos.create(db, photo_data)
        with pytest.raises(ValidationError) as exc:
            await photos.update(db, photo.id, {"category": "noir"})
        assert exc.value.field == "category"
        updated = await photos.update(db, photo.id, {"category": "urban", "uploadStatus": "ready"})
        assert updated.category == "urban"
        assert updated.upload_status == "ready"


def upload(data, key, digest_of, **fields):
    """Copy of a fixture document with its own file and hash."""
    ref = "script" if "script" in data else "image"
    reference = {
        **data[ref],
        "fileUrl": f"https://cdn.example.com/{key}",
        "storageKey": key,
        "contentHash": sha256(digest_of),
    }
    return {**data, ref: reference, **fields}


class TestGrouping:
    async def test_collections_summary(self, db, photo_data, user_id, other_user_id):
        await photos.create(db, upload(photo_data, "p/1.jpg", b"1", photoCollection="Harbor"))
        await photos.create(db, upload(photo_data, "p/2.jpg", b"2", photoCollection="Studio"))
        await photos.create(db, upload(photo_data, "p/3.jpg", b"3", photoCollection="Harbor"))
        await photos.create(db, upload(photo_data, "p/4.jpg", b"4"))
        await photos.create(
            db, upload(photo_data, "p/5.jpg", b"5", user=other_user_id, photoCollection="Harbor")
        )

        collections = await photos.list_collections(db, user_id)

        assert [(c.name, c.count) for c in collections] == [("Harbor", 2), ("Studio", 1)]
        assert collections[0].preview_url == "https://cdn.example.com/p/1.jpg"

    async def test_photos_in_collection_newest_first(self, db, photo_data, user_id):
        older = await photos.create(db, upload(photo_data, "p/1.jpg", b"1", photoCollection="Harbor"))
        await photos.create(db, upload(photo_data, "p/2.jpg", b"2", photoCollection="Studio"))
        newer = await photos.create(db, upload(photo_data, "p/3.jpg", b"3", photoCollection="Harbor"))

        found = await photos.list_by_collection(db, user_id, "Harbor")

        assert [p.id for p in found] == [newer.id, older.id]
        assert await photos.count_by_group(db, user_id, "Harbor") == 2
        assert await photos.list_by_collection(db, user_id, "Missing") == []

    async def test_projects_summary(self, db, script_data, user_id):
        await scripts.create(db, upload(script_data, "s/1.pdf", b"1", project="Feature"))
        await scripts.create(db, upload(script_data, "s/2.pdf", b"2", project="Feature"))
        await scripts.create(db, upload(script_data, "s/3.pdf", b"3"))

        projects = await scripts.list_projects(db, user_id)

        assert [(p.name, p.count) for p in projects] == [("Feature", 2)]
        assert projects[0].preview_url == "https://cdn.example.com/s/1.pdf"
        assert len(await scripts.list_by_project(db, user_id, "Feature")) == 2
