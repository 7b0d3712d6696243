import errno
import hashlib
import os

import pytest

from hashplayer.cache import DirectoryCacheStore, MemoryCacheStore, file_identity_key
from hashplayer.exceptions import CacheCorrupt, CacheMiss
from hashplayer.utils import with_retry

DIGEST = hashlib.sha256(b"block").digest()


def test_identity_key_uses_absolute_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    expected = hashlib.sha256(str(tmp_path / "movie.mp4").encode("utf-8")).hexdigest()
    assert file_identity_key("movie.mp4") == expected
    assert file_identity_key(tmp_path / "movie.mp4") == expected
    assert file_identity_key("other.mp4") != expected
    assert len(expected) == 64


def test_put_then_get(store):
    assert not store.exists("k")
    store.put("k", 3, DIGEST)
    assert store.exists("k")
    assert store.get("k", 3) == DIGEST


def test_missing_index_is_cache_miss(store):
    store.put("k", 0, DIGEST)
    with pytest.raises(CacheMiss):
        store.get("k", 1)
    with pytest.raises(CacheMiss):
        store.get("unknown", 0)


def test_put_rejects_wrong_length(store):
    with pytest.raises(CacheCorrupt):
        store.put("k", 0, b"short")


def test_staging_publishes_on_success(store):
    with store.staging("k") as writer:
        writer.put(1, DIGEST)
        writer.put(0, DIGEST[::-1])
        assert not store.exists("k")
    assert writer.published
    assert store.get("k", 1) == DIGEST
    assert store.get("k", 0) == DIGEST[::-1]


def test_staging_publishes_nothing_on_error(store):
    with pytest.raises(OSError):
        with store.staging("k") as writer:
            writer.put(1, DIGEST)
            raise OSError("disk went away")
    assert not store.exists("k")


def test_staging_joins_concurrent_publisher(store):
    with store.staging("k") as writer:
        writer.put(0, DIGEST)
        store.put("k", 0, DIGEST[::-1])
    assert not writer.published
    assert store.get("k", 0) == DIGEST[::-1]


def test_evict(store):
    store.put("k", 0, DIGEST)
    assert store.evict("k")
    assert not store.exists("k")
    assert not store.evict("k")


def test_directory_layout(dir_store):
    dir_store.put("abc", 7, DIGEST)
    path = dir_store.root / "abc" / "7.sha256"
    assert path.read_bytes() == DIGEST


def test_directory_staging_leaves_no_temp_dirs(dir_store):
    with pytest.raises(RuntimeError):
        with dir_store.staging("k") as writer:
            writer.put(0, DIGEST)
            raise RuntimeError("abort")
    with dir_store.staging("j") as writer:
        writer.put(0, DIGEST)
    assert sorted(os.listdir(dir_store.root)) == ["j"]


def test_directory_location_not_a_directory(dir_store):
    dir_store.root.mkdir(parents=True)
    (dir_store.root / "k").write_bytes(b"not a dir")
    with pytest.raises(CacheCorrupt):
        dir_store.exists("k")
    assert dir_store.evict("k")


def test_directory_truncated_entry_is_corrupt(dir_store):
    dir_store.put("k", 0, DIGEST)
    (dir_store.root / "k" / "0.sha256").write_bytes(DIGEST[:10])
    with pytest.raises(CacheCorrupt):
        dir_store.get("k", 0)


def test_memory_store_is_independent_per_instance():
    a, b = MemoryCacheStore(), MemoryCacheStore()
    a.put("k", 0, DIGEST)
    assert not b.exists("k")


def test_retry_on_transient_error():
    calls = []

    @with_retry
    def flaky():
        calls.append(1)
        if len(calls) < 2:
            raise OSError(errno.EAGAIN, "try again")
        return b"ok"

    assert flaky() == b"ok"
    assert len(calls) == 2


def test_no_retry_on_missing_file():
    calls = []

    @with_retry
    def missing():
        calls.append(1)
        raise FileNotFoundError(errno.ENOENT, "gone")

    with pytest.raises(FileNotFoundError):
        missing()
    assert len(calls) == 1


def test_block_size_published_with_staged_chain(store):
    with store.staging("k") as writer:
        writer.put_block_size(4096)
        writer.put(0, DIGEST)
    assert store.get_block_size("k") == 4096


def test_block_size_missing_is_cache_miss(store):
    store.put("k", 0, DIGEST)
    with pytest.raises(CacheMiss):
        store.get_block_size("k")


def test_evict_drops_block_size(store):
    with store.staging("k") as writer:
        writer.put_block_size(512)
        writer.put(0, DIGEST)
    assert store.evict("k")
    with pytest.raises(CacheMiss):
        store.get_block_size("k")


def test_directory_block_size_not_a_number(dir_store):
    dir_store.put("k", 0, DIGEST)
    (dir_store.root / "k" / "block_size").write_bytes(b"lots")
    with pytest.raises(CacheCorrupt):
        dir_store.get_block_size("k")


def test_directory_put_uses_unique_temp_names(dir_store, monkeypatch):
    sources = []
    real_replace = os.replace

    def recording_replace(src, dst):
        sources.append(os.fspath(src))
        real_replace(src, dst)

    monkeypatch.setattr(os, "replace", recording_replace)
    dir_store.put("k", 0, DIGEST)
    dir_store.put("k", 0, DIGEST[::-1])
    assert len(set(sources)) == 2
    assert all(source.endswith(".tmp") for source in sources)
    assert os.listdir(dir_store.root / "k") == ["0.sha256"]
    assert dir_store.get("k", 0) == DIGEST[::-1]


def test_evict_removes_abandoned_staging_dirs(dir_store):
    dir_store.root.mkdir(parents=True)
    abandoned = dir_store.root / ".k.0123456789abcdef.tmp"
    abandoned.mkdir()
    (abandoned / "3.sha256").write_bytes(DIGEST)
    other = dir_store.root / ".j.0123456789abcdef.tmp"
    other.mkdir()

    assert not dir_store.evict("k")
    assert not abandoned.exists()
    assert other.exists()
