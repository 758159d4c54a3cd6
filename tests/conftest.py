# tests/conftest.py
from email.message import Message
from email.parser import BytesParser
from typing import Any, Mapping

import pytest


def _parse(content_type: str, body: bytes) -> Message:
    raw = b"Content-Type: " + content_type.encode("ascii") + b"\r\n\r\n" + body
    return BytesParser().parsebytes(raw)


def _to_tree(msg: Message) -> Any:
    if msg.get_content_maintype() == "multipart":
        # an empty multipart body (closing delimiter only) parses as a non-multipart payload
        children = msg.get_payload() if msg.is_multipart() else []
        return [(part.get_filename(), _to_tree(part)) for part in children]
    return msg.get_payload(decode=True)


def _expected(mapping: Mapping[str, Any]) -> list:
    out = []
    for name, value in mapping.items():
        if isinstance(value, Mapping):
            out.append((name, _expected(value)))
        elif isinstance(value, str):
            out.append((name, value.encode("utf-8")))
        else:
            out.append((name, bytes(value)))
    return out


@pytest.fixture
def decode_stream():
    """Decode an encoded stream into [(filename, bytes | [...]), ...]."""

    def decode(content_type: str, body: bytes) -> list:
        return _to_tree(_parse(content_type, body))

    return decode


@pytest.fixture
def expected_tree():
    """Turn a nested {name: bytes | str | dict} mapping into decode_stream's shape."""
    return _expected
