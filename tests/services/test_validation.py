"""Tests for receiver URL validation."""

import socket

import pytest

from post_emitter.services.validation import InvalidReceiverError, validate_receiver_url


@pytest.mark.parametrize(
    "url",
    [
        "http://127.0.0.1/",
        "http://localhost:8080",
        "https://api.localhost/",
        "http://10.0.0.5",
        "http://192.168.1.20/wp",
        "http://172.16.4.1",
        "http://169.254.169.254/latest/meta-data",
        "http://0.0.0.0",
        "http://[::1]/",
        "http://[fe80::1]/",
        "http://[::ffff:10.0.0.1]/",
        "ftp://example.com",
        "javascript:alert(1)",
        "example.com",
        "https://",
        "",
    ],
)
def test_rejects_unsafe_or_malformed_urls(url: str) -> None:
    with pytest.raises(InvalidReceiverError):
        validate_receiver_url(url)


@pytest.mark.parametrize(
    "url",
    ["https://example.com", "http://example.com/blog/", "https://8.8.8.8", "  https://site.org  "],
)
def test_accepts_public_urls(url: str) -> None:
    assert validate_receiver_url(url) == url.strip()


def test_invalid_receiver_error_is_a_value_error() -> None:
    assert issubclass(InvalidReceiverError, ValueError)


def test_rejects_hostname_resolving_to_private_address(mocker) -> None:
    mocker.patch(
        "post_emitter.services.validation.socket.getaddrinfo",
        return_value=[(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.1.2.3", 0))],
    )
    with pytest.raises(InvalidReceiverError):
        validate_receiver_url("https://internal.example.com", resolve_hosts=True)


def test_accepts_hostname_resolving_to_public_address(mocker) -> None:
    mocker.patch(
        "post_emitter.services.validation.socket.getaddrinfo",
        return_value=[(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("93.184.216.34", 0))],
    )
    assert validate_receiver_url("https://example.com", resolve_hosts=True)


def test_unresolvable_hostname_is_accepted(mocker) -> None:
    mocker.patch(
        "post_emitter.services.validation.socket.getaddrinfo",
        side_effect=socket.gaierror("Name or service not known"),
    )
    assert validate_receiver_url("https://not-yet-live.example", resolve_hosts=True)


def test_resolution_is_skipped_by_default(mocker) -> None:
    getaddrinfo = mocker.patch("post_emitter.services.validation.socket.getaddrinfo")
    validate_receiver_url("https://example.com")
    getaddrinfo.assert_not_called()
