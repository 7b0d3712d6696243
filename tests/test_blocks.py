import io

import pytest

from hashplayer.blocks import DEFAULT_BLOCK_SIZE, BlockLayout, coerce_block_size
from hashplayer.exceptions import EmptyFile, InvalidBlockSizeWarning, ShortRead


@pytest.mark.parametrize(
    "file_size, block_size, num_blocks, highest",
    [
        (10240, 1024, 10, 1024),
        (10241, 1024, 11, 1),
        (11, 1024, 1, 11),
        (1, 1, 1, 1),
        (1024, 1024, 1, 1024),
        (1025, 1024, 2, 1),
        (7, 3, 3, 1),
    ],
)
def test_layout_counts(file_size, block_size, num_blocks, highest):
    layout = BlockLayout(file_size, block_size)
    assert layout.num_blocks == num_blocks
    assert layout.highest_block_size == highest
    assert 0 < layout.highest_block_size <= block_size


def test_layout_lengths_cover_file():
    layout = BlockLayout(10, 4)
    assert [layout.length(i) for i in range(layout.num_blocks)] == [4, 4, 2]
    assert [layout.offset(i) for i in range(layout.num_blocks)] == [0, 4, 8]
    assert layout.is_last(2)
    with pytest.raises(IndexError):
        layout.length(3)


def test_empty_file_rejected():
    with pytest.raises(EmptyFile):
        BlockLayout(0, 1024)


@pytest.mark.parametrize("block_size", [0, -1, -4096])
def test_non_positive_block_size_defaults_with_warning(block_size, caplog):
    with pytest.warns(InvalidBlockSizeWarning):
        assert coerce_block_size(block_size) == DEFAULT_BLOCK_SIZE
    assert "invalid block size" in caplog.text


def test_for_size_coerces_block_size():
    with pytest.warns(InvalidBlockSizeWarning):
        layout = BlockLayout.for_size(2048, 0)
    assert layout.block_size == DEFAULT_BLOCK_SIZE
    assert layout.num_blocks == 2


def test_read_exact_block():
    layout = BlockLayout(10, 4)
    f = io.BytesIO(b"0123456789")
    assert layout.read(f, 1) == b"4567"
    assert layout.read(f, 2) == b"89"
    assert layout.read(f, 0) == b"0123"


def test_read_short_block_keeps_partial():
    layout = BlockLayout(10, 4)
    f = io.BytesIO(b"012345")
    with pytest.raises(ShortRead) as excinfo:
        layout.read(f, 1)
    assert excinfo.value.partial == b"45"
    assert excinfo.value.expected == 4
    assert isinstance(excinfo.value, OSError)
