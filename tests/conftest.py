"""
Pytest configuration for rest_core tests.

This file contains shared fixtures and configuration
for all tests in the project.
"""

import email.parser
import email.policy
import os
import sys
from typing import Dict, List, Optional, Tuple

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from rest_core.client import Client
from rest_core.network.mock import MockNetworkBackend
from rest_core.transport import HTTPTransport

BASE_URL = "http://api.example.com/"


def build_response(
    status: int = 200,
    reason: str = "OK",
    headers: Optional[List[Tuple[str, str]]] = None,
    body: bytes = b"",
    content_type: Optional[str] = None,
) -> bytes:
    """Render raw HTTP/1.1 response bytes; adds Content-Length unless chunked."""
    headers = list(headers or [])
    if content_type is not None:
        headers.append(("Content-Type", content_type))
    names = {name.lower() for name, _ in headers}
    if "transfer-encoding" not in names and "content-length" not in names:
        headers.append(("Content-Length", str(len(body))))
    head = f"HTTP/1.1 {status} {reason}\r\n"
    head += "".join(f"{name}: {value}\r\n" for name, value in headers)
    return head.encode("latin-1") + b"\r\n" + body


def split_request(raw: bytes) -> Tuple[str, Dict[str, str], bytes]:
    """Split raw request bytes into request line, lower-cased headers and body."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return lines[0], headers, body


def parse_multipart(content_type: str, body: bytes) -> Dict[str, Tuple[Optional[str], bytes]]:
    """Decode a multipart/form-data body with the email package."""
    message = email.parser.BytesParser(policy=email.policy.default).parsebytes(
        f"Content-Type: {content_type}\r\n\r\n".encode("latin-1") + body
    )
    fields = {}
    for part in message.iter_parts():
        name = part.get_param("name", header="content-disposition")
        fields[name] = (part.get_filename(), part.get_payload(decode=True))
    return fields


@pytest.fixture
def mock_backend():
    """Create a mock network backend."""
    return MockNetworkBackend()


@pytest.fixture
def transport(mock_backend):
    """Create a transport over the mock backend."""
    return HTTPTransport(backend=mock_backend)


@pytest.fixture
def client(transport):
    """Create a client for BASE_URL over the mock backend."""
    return Client(BASE_URL, transport=transport)


@pytest.fixture
def response_bytes():
    """Factory for raw HTTP response bytes."""
    return build_response


@pytest.fixture
def sample_file_content():
    """Sample upload content for multipart tests."""
    return "Mary had a little lamb."
