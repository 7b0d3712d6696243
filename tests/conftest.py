import random

import pytest

from hashplayer.cache import DirectoryCacheStore, MemoryCacheStore


def payload(size, seed=0):
    return random.Random(seed).randbytes(size)


@pytest.fixture
def make_file(tmp_path):
    def _make(size, name="input.bin", seed=0):
        path = tmp_path / name
        path.write_bytes(payload(size, seed))
        return path

    return _make


@pytest.fixture
def dir_store(tmp_path):
    return DirectoryCacheStore(tmp_path / "cache")


@pytest.fixture(params=["directory", "memory"])
def store(request, tmp_path):
    if request.param == "directory":
        return DirectoryCacheStore(tmp_path / "cache")
    return MemoryCacheStore()
