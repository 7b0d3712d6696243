import hashplayer


def test_public_api_members():
    # Ensure core functions and classes are exposed
    assert hasattr(hashplayer, 'ChainBuilder')
    assert hasattr(hashplayer, 'BlockServer')
    assert hasattr(hashplayer, 'decode')
    assert hasattr(hashplayer, 'Decoder')
    assert hasattr(hashplayer, 'stream_file')
    assert hasattr(hashplayer, 'DirectoryCacheStore')
    assert hasattr(hashplayer, 'start_metrics_server')
    for name in hashplayer.__all__:
        assert hasattr(hashplayer, name)


def test_package_version():
    from hashplayer.config import get_package_version

    assert get_package_version() == hashplayer.__version__
