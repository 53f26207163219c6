"""Tests for the bitstream store facade over a filesystem backend."""

import hashlib
import io
from unittest.mock import AsyncMock, MagicMock

import pytest

from bitstore.errors import IOFailure, StoreNotReadyError
from bitstore.models import ObjectMetadata, Provider, StorageDescriptor
from bitstore.store import BitstreamStore, StoreState


class _BrokenStream(io.RawIOBase):
    """Yields some bytes, then fails like a dropped upload connection."""

    def __init__(self):
        self._sent = False

    def readable(self):
        return True

    def readinto(self, b):
        if self._sent:
            raise ConnectionResetError("client went away")
        self._sent = True
        b[:4] = b"part"
        return 4


@pytest.mark.asyncio
async def test_write_then_read_roundtrip(store):
    content = b"Hello bitstream\n" * 1000
    ident = store.generate_identifier()

    result = await store.write(ident, io.BytesIO(content), "text/plain")

    assert result.size_bytes == len(content)
    assert result.checksum == hashlib.md5(content).hexdigest()
    assert result.checksum_algorithm == "MD5"
    assert result.key == store.derive_key(ident)

    stream = await store.read(ident)
    assert stream.read() == content


@pytest.mark.asyncio
async def test_write_lands_at_sharded_key(store, descriptor, tmp_path):
    await store.write("ABCDEF1234", io.BytesIO(b"data"))
    path = tmp_path / "assetstore" / "assets" / "AB" / "CD" / "EF" / "ABCDEF1234"
    assert path.read_bytes() == b"data"


@pytest.mark.asyncio
async def test_write_empty_content(store):
    result = await store.write("EMPTY000001", io.BytesIO(b""))
    assert result.size_bytes == 0
    assert result.checksum == hashlib.md5(b"").hexdigest()
    assert (await store.read("EMPTY000001")).read() == b""


@pytest.mark.asyncio
async def test_overwrite_last_write_wins(store):
    await store.write("SAME00000001", io.BytesIO(b"first"))
    await store.write("SAME00000001", io.BytesIO(b"second"))
    assert (await store.read("SAME00000001")).read() == b"second"


@pytest.mark.asyncio
async def test_staging_file_removed_after_write(store, staging_dir):
    await store.write("STAGE0000001", io.BytesIO(b"x" * 10))
    assert list(staging_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_failed_stream_leaves_nothing_behind(store, staging_dir):
    with pytest.raises(IOFailure) as exc:
        await store.write("BROKEN000001", io.BufferedReader(_BrokenStream()))

    assert exc.value.operation == "write"
    assert exc.value.key == store.derive_key("BROKEN000001")
    assert isinstance(exc.value.cause, ConnectionResetError)
    assert list(staging_dir.iterdir()) == []
    with pytest.raises(IOFailure):
        await store.read("BROKEN000001")


@pytest.mark.asyncio
async def test_read_missing_raises_io_failure(store):
    with pytest.raises(IOFailure) as exc:
        await store.read("NOPE00000001")
    assert exc.value.operation == "read"
    assert exc.value.key == "assets/NO/PE/00/NOPE00000001"
    assert isinstance(exc.value.cause, FileNotFoundError)


@pytest.mark.asyncio
async def test_delete_twice_is_idempotent(store):
    await store.write("GONE00000001", io.BytesIO(b"bye"))
    await store.delete("GONE00000001")
    await store.delete("GONE00000001")
    with pytest.raises(IOFailure):
        await store.read("GONE00000001")


@pytest.mark.asyncio
async def test_delete_never_written(store):
    await store.delete("NEVER0000001")


@pytest.mark.asyncio
async def test_delete_prunes_empty_directories(store, tmp_path):
    await store.write("ABCDEF1234", io.BytesIO(b"data"))
    await store.write("ABCDXX9999", io.BytesIO(b"keep"))
    await store.delete("ABCDEF1234")

    assets = tmp_path / "assetstore" / "assets"
    assert not (assets / "AB" / "CD" / "EF").exists()
    assert (assets / "AB" / "CD" / "XX" / "ABCDXX9999").exists()


@pytest.mark.asyncio
async def test_stat_never_written(store):
    with pytest.raises(IOFailure) as exc:
        await store.stat("MISSING00001", ["size_bytes"])
    assert exc.value.operation == "stat"


@pytest.mark.asyncio
async def test_stat_after_write(store):
    content = b"0123456789"
    await store.write("STAT00000001", io.BytesIO(content))

    meta = await store.stat("STAT00000001")
    assert meta["size_bytes"] == len(content)
    assert meta["checksum"] == hashlib.md5(content).hexdigest()
    assert meta["checksum_algorithm"] == "MD5"
    assert isinstance(meta["modified"], int)


@pytest.mark.asyncio
async def test_stat_attribute_subset(store):
    await store.write("STAT00000002", io.BytesIO(b"abc"))
    meta = await store.stat("STAT00000002", ["size_bytes", "unknown"])
    assert meta == {"size_bytes": 3}


@pytest.mark.asyncio
async def test_stat_checksum_algorithm_alone(store):
    await store.write("STAT00000009", io.BytesIO(b"abc"))
    meta = await store.stat("STAT00000009", ["checksum_algorithm"])
    assert meta == {"checksum_algorithm": "MD5"}


@pytest.mark.asyncio
async def test_bare_registered_marker_cannot_shadow_subfolder(store):
    with pytest.raises(ValueError):
        await store.write("-R", io.BytesIO(b"x"))

    await store.write("ABCDEF1234", io.BytesIO(b"data"))
    assert (await store.read("ABCDEF1234")).read() == b"data"


@pytest.mark.asyncio
async def test_empty_identifier_rejected(store):
    with pytest.raises(ValueError):
        await store.read("")


@pytest.mark.asyncio
async def test_registered_identifier_not_sharded(descriptor, tmp_path):
    store = BitstreamStore(descriptor, registered=lambda i: i.startswith("-1"))
    await store.initialize()
    await store.write("-1ABCDEF1234", io.BytesIO(b"ext"))
    assert (tmp_path / "assetstore" / "assets" / "ABCDEF1234").read_bytes() == b"ext"


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_operations_before_initialize_fail_fast(self, descriptor):
        storage = MagicMock()
        store = BitstreamStore(descriptor, storage_factory=lambda d: storage)
        assert store.state is StoreState.UNINITIALIZED

        with pytest.raises(StoreNotReadyError) as exc:
            await store.read("ABC123")
        assert isinstance(exc.value, IOFailure)
        assert exc.value.state == "uninitialized"
        storage.read.assert_not_called()

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, descriptor):
        storage = MagicMock()
        storage.init = AsyncMock()
        factory = MagicMock(return_value=storage)
        store = BitstreamStore(descriptor, storage_factory=factory)

        await store.initialize()
        await store.initialize()

        assert store.state is StoreState.READY
        factory.assert_called_once_with(descriptor)
        storage.init.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_construction_failure_soft_fails(self, descriptor, caplog):
        def factory(d):
            raise RuntimeError("bad credentials")

        store = BitstreamStore(descriptor, storage_factory=factory)
        await store.initialize()

        assert store.state is StoreState.FAILED
        assert not store.is_initialized()
        assert "Failed to initialize" in caplog.text

        for op, call in [
            ("read", store.read("ABC123")),
            ("delete", store.delete("ABC123")),
            ("stat", store.stat("ABC123")),
            ("write", store.write("ABC123", io.BytesIO(b"x"))),
        ]:
            with pytest.raises(StoreNotReadyError) as exc:
                await call
            assert exc.value.operation == op
            assert exc.value.state == "failed"

    @pytest.mark.asyncio
    async def test_probe_failure_soft_fails(self, descriptor):
        storage = MagicMock()
        storage.init = AsyncMock(side_effect=ConnectionError("unreachable"))
        store = BitstreamStore(descriptor, storage_factory=lambda d: storage)

        await store.initialize()
        assert store.state is StoreState.FAILED

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, descriptor):
        storage = MagicMock()
        storage.init = AsyncMock(side_effect=[ConnectionError("down"), None])
        store = BitstreamStore(descriptor, storage_factory=lambda d: storage)

        await store.initialize()
        assert store.state is StoreState.FAILED
        await store.initialize()
        assert store.state is StoreState.READY

    @pytest.mark.asyncio
    async def test_missing_container_soft_fails(self, staging_dir):
        d = StorageDescriptor(provider=Provider.S3, container="")
        store = BitstreamStore(d)
        await store.initialize()
        assert store.state is StoreState.FAILED

    def test_is_enabled_reflects_descriptor(self, tmp_path):
        on = StorageDescriptor(provider="fs", container=str(tmp_path))
        off = StorageDescriptor(provider="fs", container=str(tmp_path), enabled=False)
        assert BitstreamStore(on).is_enabled()
        assert not BitstreamStore(off).is_enabled()


class TestErrorTranslation:
    @pytest.fixture
    def backend(self):
        storage = MagicMock()
        storage.init = AsyncMock()
        storage.read = AsyncMock(side_effect=PermissionError("denied"))
        storage.write = AsyncMock(side_effect=TimeoutError("slow"))
        storage.delete = AsyncMock(side_effect=OSError("disk gone"))
        storage.stat = AsyncMock(
            return_value=ObjectMetadata(size_bytes=5, content_type="text/plain")
        )
        return storage

    @pytest.mark.asyncio
    async def test_backend_errors_wrapped(self, descriptor, backend, staging_dir):
        store = BitstreamStore(descriptor, storage_factory=lambda d: backend)
        await store.initialize()

        with pytest.raises(IOFailure) as exc:
            await store.read("ABC123")
        assert isinstance(exc.value.cause, PermissionError)
        assert exc.value.key == "assets/ABC123/ABC123"

        with pytest.raises(IOFailure) as exc:
            await store.write("ABC123", io.BytesIO(b"hello"))
        assert isinstance(exc.value.cause, TimeoutError)
        assert list(staging_dir.iterdir()) == []

        with pytest.raises(IOFailure) as exc:
            await store.delete("ABC123")
        assert isinstance(exc.value.cause, OSError)

    @pytest.mark.asyncio
    async def test_write_passes_staged_file_and_content_type(self, descriptor, backend):
        seen = {}

        async def capture(key, source, content_type):
            seen["key"] = key
            seen["data"] = source.read_bytes()
            seen["content_type"] = content_type

        backend.write = AsyncMock(side_effect=capture)
        store = BitstreamStore(descriptor, storage_factory=lambda d: backend)
        await store.initialize()

        await store.write("ABC123", io.BytesIO(b"hello"))
        assert seen == {
            "key": "assets/ABC123/ABC123",
            "data": b"hello",
            "content_type": "application/octet-stream",
        }
        backend.write.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stat_requests_checksum_only_when_asked(self, descriptor, backend):
        store = BitstreamStore(descriptor, storage_factory=lambda d: backend)
        await store.initialize()

        meta = await store.stat("ABC123", ["size_bytes", "content_type"])
        assert meta == {"size_bytes": 5, "content_type": "text/plain"}
        backend.stat.assert_awaited_with("assets/ABC123/ABC123", with_checksum=False)

        await store.stat("ABC123", ["checksum"])
        backend.stat.assert_awaited_with("assets/ABC123/ABC123", with_checksum=True)

        await store.stat("ABC123", ["checksum_algorithm"])
        backend.stat.assert_awaited_with("assets/ABC123/ABC123", with_checksum=True)

    @pytest.mark.asyncio
    async def test_backend_file_not_found_on_delete_is_success(self, descriptor, backend):
        backend.delete = AsyncMock(side_effect=FileNotFoundError("x"))
        store = BitstreamStore(descriptor, storage_factory=lambda d: backend)
        await store.initialize()
        await store.delete("ABC123")
