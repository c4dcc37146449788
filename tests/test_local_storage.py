"""
Tests for the local disk storage adapter.
"""

from pathlib import Path

import pytest

from cdn_gateway.errors import BadRequestError, ConflictError, NotFoundError
from cdn_gateway.storage import LocalStorageAdapter, create_storage


async def read_all(storage: LocalStorageAdapter, path: str) -> bytes:
    return b"".join([chunk async for chunk in await storage.read(path)])


async def iter_chunks(*chunks: bytes):
    for chunk in chunks:
        yield chunk


class TestLocalStorageAdapter:
    @pytest.fixture
    async def storage(self, temp_dir):
        storage = LocalStorageAdapter(Path(temp_dir) / "root")
        await storage.initialize()
        return storage

    @pytest.mark.asyncio
    async def test_initialize_creates_root(self, storage):
        assert storage.root.is_dir()

    @pytest.mark.asyncio
    async def test_write_and_read(self, storage):
        await storage.write("images/cats/a.png", b"png-bytes")

        assert await storage.exists("images/cats/a.png")
        assert await read_all(storage, "images/cats/a.png") == b"png-bytes"

    @pytest.mark.asyncio
    async def test_write_streamed(self, storage):
        await storage.write("a.png", iter_chunks(b"ab", b"cd", b"ef"))
        assert await read_all(storage, "a.png") == b"abcdef"

    @pytest.mark.asyncio
    async def test_write_overwrites(self, storage):
        await storage.write("a.png", b"first")
        await storage.write("a.png", b"second")
        assert await read_all(storage, "a.png") == b"second"

    @pytest.mark.asyncio
    async def test_read_missing(self, storage):
        with pytest.raises(NotFoundError):
            await storage.read("missing.png")

    @pytest.mark.asyncio
    async def test_read_directory(self, storage):
        await storage.mkdir("images")
        with pytest.raises(NotFoundError):
            await storage.read("images")

    @pytest.mark.asyncio
    async def test_list_orders_directories_first(self, storage):
        await storage.write("b.png", b"12345")
        await storage.write("a.svg", b"<svg/>")
        await storage.mkdir("zeta")
        await storage.mkdir("alpha")

        items = await storage.list("")

        assert [item.name for item in items] == ["alpha", "zeta", "a.svg", "b.png"]
        assert [item.type for item in items] == [
            "directory",
            "directory",
            "file",
            "file",
        ]
        b_png = items[3]
        assert b_png.path == "b.png"
        assert b_png.size == 5
        assert b_png.mime_type == "image/png"
        assert b_png.etag is not None and b_png.etag.endswith('-5"')
        assert b_png.last_modified.tzinfo is not None
        assert items[0].size is None

    @pytest.mark.asyncio
    async def test_list_hides_dotfiles_and_thumbnails(self, storage):
        await storage.write(".thumbnails/a.png.thumb.png", b"x")
        await storage.write(".hidden", b"x")
        await storage.write("a.png", b"x")

        assert [item.name for item in await storage.list("")] == ["a.png"]

    @pytest.mark.asyncio
    async def test_list_nested_paths(self, storage):
        await storage.write("images/cats/a.png", b"x")
        items = await storage.list("images")
        assert [(item.name, item.path) for item in items] == [("cats", "images/cats")]

    @pytest.mark.asyncio
    async def test_list_missing_directory_is_empty(self, storage):
        assert await storage.list("nope") == []

    @pytest.mark.asyncio
    async def test_mkdir_is_idempotent(self, storage):
        await storage.mkdir("a/b/c")
        await storage.mkdir("a/b/c")
        assert (storage.root / "a" / "b" / "c").is_dir()

    @pytest.mark.asyncio
    async def test_mkdir_over_file_conflicts(self, storage):
        await storage.write("a.png", b"x")
        with pytest.raises(ConflictError):
            await storage.mkdir("a.png")

    @pytest.mark.asyncio
    async def test_mkdir_under_file_conflicts(self, storage):
        await storage.write("a.png", b"x")
        with pytest.raises(ConflictError):
            await storage.mkdir("a.png/sub")

    @pytest.mark.asyncio
    async def test_write_under_file_conflicts(self, storage):
        await storage.write("a.png", b"x")
        with pytest.raises(ConflictError):
            await storage.write("a.png/b.png", b"y")
        assert await read_all(storage, "a.png") == b"x"

    @pytest.mark.asyncio
    async def test_write_over_directory_conflicts(self, storage):
        await storage.mkdir("images/cat.png")
        with pytest.raises(ConflictError):
            await storage.write("images/cat.png", iter_chunks(b"x"))
        assert (storage.root / "images" / "cat.png").is_dir()

    @pytest.mark.asyncio
    async def test_delete_file(self, storage):
        await storage.write("a.png", b"x")
        await storage.delete("a.png")
        assert not await storage.exists("a.png")

    @pytest.mark.asyncio
    async def test_delete_directory_recursively(self, storage):
        await storage.write("images/cats/a.png", b"x")
        await storage.delete("images")
        assert not await storage.exists("images")

    @pytest.mark.asyncio
    async def test_delete_missing(self, storage):
        with pytest.raises(NotFoundError):
            await storage.delete("missing.png")

    @pytest.mark.asyncio
    async def test_delete_root_refused(self, storage):
        with pytest.raises(BadRequestError):
            await storage.delete("")
        assert storage.root.is_dir()

    @pytest.mark.asyncio
    async def test_move_creates_destination_parent(self, storage):
        await storage.write("a.png", b"x")
        await storage.move("a.png", "archive/2024/a.png")

        assert not await storage.exists("a.png")
        assert await read_all(storage, "archive/2024/a.png") == b"x"

    @pytest.mark.asyncio
    async def test_move_missing_source(self, storage):
        with pytest.raises(NotFoundError):
            await storage.move("missing.png", "b.png")

    @pytest.mark.asyncio
    async def test_move_into_itself(self, storage):
        await storage.mkdir("images")
        with pytest.raises(BadRequestError):
            await storage.move("images", "images/nested")
        with pytest.raises(BadRequestError):
            await storage.move("images", "images")

    @pytest.mark.asyncio
    async def test_move_prefix_sibling_allowed(self, storage):
        await storage.mkdir("images")
        await storage.move("images", "images-old")
        assert await storage.exists("images-old")

    @pytest.mark.asyncio
    async def test_move_onto_empty_directory_conflicts(self, storage):
        await storage.write("src/a.png", b"x")
        await storage.mkdir("dst")

        with pytest.raises(ConflictError):
            await storage.move("src", "dst")
        assert await read_all(storage, "src/a.png") == b"x"
        assert await storage.list("dst") == []

    @pytest.mark.asyncio
    async def test_move_onto_non_empty_directory_conflicts(self, storage):
        await storage.write("src/a.png", b"x")
        await storage.write("dst/b.png", b"y")

        with pytest.raises(ConflictError):
            await storage.move("src", "dst")
        with pytest.raises(ConflictError):
            await storage.move("src/a.png", "dst")
        assert await read_all(storage, "src/a.png") == b"x"
        assert await read_all(storage, "dst/b.png") == b"y"

    @pytest.mark.asyncio
    async def test_move_under_file_conflicts(self, storage):
        await storage.write("a.png", b"x")
        await storage.write("b.png", b"y")

        with pytest.raises(ConflictError):
            await storage.move("b.png", "a.png/b.png")
        assert await storage.exists("b.png")

    @pytest.mark.asyncio
    async def test_stat(self, storage):
        await storage.write("images/a.svg", b"<svg/>")

        info = await storage.stat("images/a.svg")
        assert info.name == "a.svg"
        assert info.type == "file"
        assert info.mime_type == "image/svg+xml"

        directory = await storage.stat("images")
        assert directory.type == "directory"
        assert directory.etag is None

    @pytest.mark.asyncio
    async def test_stat_missing(self, storage):
        with pytest.raises(NotFoundError):
            await storage.stat("missing")

    @pytest.mark.asyncio
    async def test_no_etag_for_other_extensions(self, storage):
        await storage.write("notes.txt", b"x")
        assert (await storage.stat("notes.txt")).etag is None


def test_create_storage(make_settings, temp_dir):
    storage = create_storage(make_settings())
    assert isinstance(storage, LocalStorageAdapter)
    assert storage.root == (Path(temp_dir) / "storage").resolve()
