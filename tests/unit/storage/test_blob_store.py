"""
Unit Tests for the blob store adapters.

FileSystemBlobStore runs against a temporary directory and
DatabaseBlobStore against the temporary SQLite file.
"""

from unittest.mock import patch

import pytest

from cloudnote.core.exceptions import BlobStorageError
from cloudnote.storage.base import BlobInfo
from cloudnote.storage.blob import DatabaseBlobStore, FileSystemBlobStore, encode_segment, key_segments


class TestKeySegments:
    def test_plain_key(self):
        assert key_segments("backups/backup-1.json") == ["backups", "backup-1.json"]

    @pytest.mark.parametrize("key", ["", "/abs/key", "a//b", "trailing/", "../../etc/passwd", "a/./b"])
    def test_malformed_keys_rejected(self, key):
        with pytest.raises(BlobStorageError):
            key_segments(key)


class TestEncodeSegment:
    def test_safe_name_unchanged(self):
        assert encode_segment("backup-1.json") == "backup-1.json"

    def test_unsafe_characters_are_percent_encoded(self):
        assert encode_segment("a b;c.json") == "a%20b%3Bc.json"

    def test_percent_sign_is_encoded(self):
        assert encode_segment("a%20b") == "a%2520b"

    def test_leading_dot_is_encoded(self):
        assert encode_segment(".tmp-x") == "%2Etmp-x"


class TestFileSystemBlobStore:
    @pytest.mark.asyncio
    async def test_put_then_get(self, blob_store):
        assert await blob_store.put("backups/b1.json", b'{"notes": []}') is True
        assert await blob_store.get("backups/b1.json") == b'{"notes": []}'

    @pytest.mark.asyncio
    async def test_str_payload_is_utf8(self, blob_store):
        await blob_store.put("exports/e.json", "héllo")
        assert await blob_store.get("exports/e.json") == "héllo".encode("utf-8")

    @pytest.mark.asyncio
    async def test_missing_key_is_none(self, blob_store):
        assert await blob_store.get("backups/none.json") is None

    @pytest.mark.asyncio
    async def test_overwrite(self, blob_store):
        await blob_store.put("k.json", b"one")
        await blob_store.put("k.json", b"two")
        assert await blob_store.get("k.json") == b"two"

    @pytest.mark.asyncio
    async def test_traversal_key_rejected(self, blob_store, tmp_path):
        with pytest.raises(BlobStorageError):
            await blob_store.put("../../escaped.txt", b"x")

        assert not (tmp_path.parent / "escaped.txt").exists()

    @pytest.mark.asyncio
    async def test_unsafe_key_lands_in_encoded_file(self, blob_store, blob_root):
        await blob_store.put("exports/a b.json", b"x")

        assert (blob_root / "exports" / "a%20b.json").read_bytes() == b"x"

    @pytest.mark.asyncio
    async def test_leftover_temp_files_are_not_listed(self, blob_store, blob_root):
        await blob_store.put("k.json", b"v")
        (blob_root / ".tmp-abandoned").write_bytes(b"partial")

        assert await blob_store.list() == [BlobInfo("k.json", 1)]

    @pytest.mark.asyncio
    async def test_list_by_prefix_sorted(self, blob_store):
        await blob_store.put("backups/b2.json", b"22")
        await blob_store.put("backups/b1.json", b"1")
        await blob_store.put("exports/e1.json", b"333")

        backups = await blob_store.list("backups/")
        assert backups == [BlobInfo("backups/b1.json", 1), BlobInfo("backups/b2.json", 2)]
        assert len(await blob_store.list()) == 3

    @pytest.mark.asyncio
    async def test_list_of_missing_root_is_empty(self, tmp_path):
        store = FileSystemBlobStore(tmp_path / "never-created")
        assert await store.list() == []

    @pytest.mark.asyncio
    async def test_delete(self, blob_store):
        await blob_store.put("k.json", b"v")
        await blob_store.delete("k.json")
        assert await blob_store.get("k.json") is None

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self, blob_store):
        await blob_store.delete("never/written.json")

    @pytest.mark.asyncio
    async def test_os_error_becomes_blob_storage_error(self, blob_store):
        with patch.object(FileSystemBlobStore, "_write_file", side_effect=OSError("disk full")):
            with pytest.raises(BlobStorageError):
                await blob_store.put("k.json", b"v")


class TestDatabaseBlobStore:
    @pytest.fixture
    def db_blobs(self, session_factory):
        return DatabaseBlobStore(session_factory)

    @pytest.mark.asyncio
    async def test_put_then_get(self, db_blobs):
        await db_blobs.put("backups/b1.json", b"payload")
        assert await db_blobs.get("backups/b1.json") == b"payload"

    @pytest.mark.asyncio
    async def test_put_upserts(self, db_blobs):
        await db_blobs.put("k", b"one")
        await db_blobs.put("k", "second")

        assert await db_blobs.get("k") == b"second"
        assert await db_blobs.list() == [BlobInfo("k", 6)]

    @pytest.mark.asyncio
    async def test_missing_key_is_none(self, db_blobs):
        assert await db_blobs.get("absent") is None

    @pytest.mark.asyncio
    async def test_list_by_prefix(self, db_blobs):
        await db_blobs.put("exports/e1.json", b"e")
        await db_blobs.put("backups/b1.json", b"bb")

        assert await db_blobs.list("backups/") == [BlobInfo("backups/b1.json", 2)]

    @pytest.mark.asyncio
    async def test_like_wildcards_in_prefix_are_literal(self, db_blobs):
        await db_blobs.put("backups/b1.json", b"x")
        assert await db_blobs.list("back%") == []

    @pytest.mark.asyncio
    async def test_delete(self, db_blobs):
        await db_blobs.put("k", b"v")
        await db_blobs.delete("k")
        assert await db_blobs.get("k") is None

    @pytest.mark.asyncio
    async def test_empty_key_rejected(self, db_blobs):
        with pytest.raises(BlobStorageError):
            await db_blobs.put("", b"v")


@pytest.fixture(params=["filesystem", "database"])
def any_blob_store(request, session_factory, blob_root):
    """Each blob store target, for assertions both must satisfy."""
    if request.param == "filesystem":
        return FileSystemBlobStore(blob_root)
    return DatabaseBlobStore(session_factory)


class TestBlobStoreContract:
    @pytest.mark.asyncio
    async def test_similar_keys_stay_distinct(self, any_blob_store):
        await any_blob_store.put("exports/a b.json", b"1")
        await any_blob_store.put("exports/a_b.json", b"22")

        assert await any_blob_store.get("exports/a b.json") == b"1"
        assert await any_blob_store.get("exports/a_b.json") == b"22"
        assert await any_blob_store.list("exports/") == [
            BlobInfo("exports/a b.json", 1),
            BlobInfo("exports/a_b.json", 2),
        ]

    @pytest.mark.asyncio
    async def test_listing_returns_written_keys(self, any_blob_store):
        keys = ["backups/b%201.json", "backups/\u00e9t\u00e9.json", "backups/.hidden", "backups/x;y"]
        for key in keys:
            await any_blob_store.put(key, b"v")

        assert [info.key for info in await any_blob_store.list("backups/")] == sorted(keys)
        for key in keys:
            assert await any_blob_store.get(key) == b"v"

    @pytest.mark.asyncio
    async def test_delete_removes_only_that_key(self, any_blob_store):
        await any_blob_store.put("k 1", b"a")
        await any_blob_store.put("k_1", b"b")

        await any_blob_store.delete("k 1")

        assert await any_blob_store.get("k 1") is None
        assert await any_blob_store.get("k_1") == b"b"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["", "../escaped", "/abs", "a//b"])
    async def test_malformed_keys_rejected(self, any_blob_store, key):
        with pytest.raises(BlobStorageError):
            await any_blob_store.put(key, b"x")
        with pytest.raises(BlobStorageError):
            await any_blob_store.get(key)
