import pytest

from app.utils import b64url_decode, b64url_encode, hostname_of, parse_version


def test_b64url_encode_strips_padding() -> None:
    token = b64url_encode("https://a.example")
    assert "=" not in token
    assert "+" not in token and "/" not in token
    assert b64url_decode(token) == "https://a.example"


@pytest.mark.parametrize("token", ["", "   ", "A", "_w"])
def test_b64url_decode_rejects_garbage(token: str) -> None:
    assert b64url_decode(token) is None


def test_hostname_of() -> None:
    assert hostname_of("https://torrentio.strem.fun/config") == "torrentio.strem.fun"
    assert hostname_of("no scheme") is None
    assert hostname_of(None) is None


def test_parse_version_splits_components() -> None:
    assert parse_version("3.0.0") == {"version": "3.0.0", "major": 3, "minor": 0, "patch": 0}
    assert parse_version("4.2") == {"version": "4.2", "major": 4, "minor": 2, "patch": 0}
    assert parse_version("1.x.7")["minor"] == 0
