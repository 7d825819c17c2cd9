"""
Tests for the HTTP/1.1 connection.

All tests run over MockNetworkBackend: the canned response is queued
before the connection opens and the bytes the connection wrote are
inspected afterwards.
"""

import socket
from unittest.mock import MagicMock

import pytest

from conftest import build_response, split_request
from rest_core.exceptions import (
    InvalidArgumentError,
    MalformedEndpointError,
    ProtocolError,
    StreamError,
    TimeoutError,
    TransportError,
)
from rest_core.http11 import ConnectionState, HTTP11Connection
from rest_core.network.mock import MockNetworkBackend


@pytest.fixture
def backend():
    return MockNetworkBackend()


def open_connection(backend, url="http://example.com/path", method="GET", **kwargs):
    return HTTP11Connection(url, backend, method=method, **kwargs)


class TestConfiguration:
    """Test connection setup before connecting."""

    def test_initial_state(self, backend) -> None:
        connection = open_connection(backend)
        assert connection.state == ConnectionState.NEW
        assert connection.method == "GET"
        assert connection.url == "http://example.com/path"
        assert connection.do_input
        assert not connection.do_output
        assert connection.fixed_length is None
        assert backend.connections == []

    def test_method_normalized(self, backend) -> None:
        assert open_connection(backend, method="post").method == "POST"

    @pytest.mark.parametrize("method", ["PATCH", "FETCH", ""])
    def test_invalid_method(self, backend, method) -> None:
        with pytest.raises(ProtocolError, match="Invalid HTTP method"):
            open_connection(backend, method=method)

    @pytest.mark.parametrize("url", ["not a url", "ftp://example.com/", "http://"])
    def test_malformed_url(self, backend, url) -> None:
        with pytest.raises(MalformedEndpointError) as exc_info:
            open_connection(backend, url=url)
        assert isinstance(exc_info.value.cause, ValueError)

    def test_headers_case_insensitive(self, backend) -> None:
        connection = open_connection(backend)
        connection.set_header("X-Token", "one")
        connection.set_header("x-token", "two")
        assert connection.get_header("X-TOKEN") == "two"
        assert connection.request_headers == {"x-token": "two"}

    def test_negative_fixed_length(self, backend) -> None:
        with pytest.raises(InvalidArgumentError):
            open_connection(backend).set_fixed_length_streaming_mode(-1)

    def test_no_changes_after_connect(self, backend) -> None:
        connection = open_connection(backend)
        connection.connect()
        with pytest.raises(ProtocolError, match="Cannot set a request header"):
            connection.set_header("X-Late", "1")
        with pytest.raises(ProtocolError):
            connection.method = "POST"
        with pytest.raises(ProtocolError):
            connection.set_fixed_length_streaming_mode(3)


class TestConnect:
    """Test opening the network connection."""

    def test_connect(self, backend) -> None:
        connection = open_connection(
            backend, "http://example.com:8080/", connect_timeout=1.0, read_timeout=2.0
        )
        connection.connect()
        connection.connect()
        assert connection.state == ConnectionState.CONNECTED
        assert backend.addresses == [("example.com", 8080)]
        assert backend.last_connection.timeout == 2.0

    def test_https_wraps_stream(self, backend) -> None:
        connection = open_connection(backend, "https://example.com/")
        connection.connect()
        assert backend.addresses == [("example.com", 443)]
        assert backend.last_connection.get_extra_info("ssl_object") is True

    def test_connect_refused(self, backend) -> None:
        backend.fail_next_connect(ConnectionRefusedError("refused"))
        connection = open_connection(backend)
        with pytest.raises(TransportError, match="Connecting to example.com:80") as exc_info:
            connection.connect()
        assert isinstance(exc_info.value.cause, ConnectionRefusedError)
        assert connection.state == ConnectionState.NEW

    def test_connect_timeout(self, backend) -> None:
        backend.fail_next_connect(socket.timeout("timed out"))
        connection = open_connection(backend, connect_timeout=5.0)
        with pytest.raises(TimeoutError) as exc_info:
            connection.connect()
        assert exc_info.value.timeout == 5.0
        assert isinstance(exc_info.value, TransportError)


class TestRequestEncoding:
    """Test the bytes written for a request."""

    def test_get_without_body(self, backend) -> None:
        backend.queue_response(build_response())
        connection = open_connection(backend, "http://example.com/path?q=1")
        assert connection.response_code == 200

        line, headers, body = split_request(backend.last_connection.written_data)
        assert line == "GET /path?q=1 HTTP/1.1"
        assert headers["host"] == "example.com"
        assert headers["connection"] == "close"
        assert headers["user-agent"] == HTTP11Connection.DEFAULT_USER_AGENT
        assert "content-length" not in headers
        assert "transfer-encoding" not in headers
        assert body == b""

    def test_post_without_body_announces_empty_body(self, backend) -> None:
        backend.queue_response(build_response())
        connection = open_connection(backend, method="POST")
        connection.response_code
        _, headers, _ = split_request(backend.last_connection.written_data)
        assert headers["content-length"] == "0"

    def test_custom_headers(self, backend) -> None:
        backend.queue_response(build_response())
        connection = open_connection(backend, "http://example.com:8080/")
        connection.set_header("User-Agent", "tests")
        connection.set_header("Accept", "application/json")
        connection.response_code
        _, headers, _ = split_request(backend.last_connection.written_data)
        assert headers["user-agent"] == "tests"
        assert headers["accept"] == "application/json"
        assert headers["host"] == "example.com:8080"

    def test_header_value_with_line_break(self, backend) -> None:
        backend.queue_response(build_response())
        connection = open_connection(backend)
        connection.set_header("X-Bad", "a\r\nEvil: 1")
        with pytest.raises(ProtocolError, match="Building request") as exc_info:
            connection.response_code
        assert exc_info.value.cause is not None
        assert backend.last_connection.written_data == b""

    def test_non_ascii_header_name(self, backend) -> None:
        backend.queue_response(build_response())
        connection = open_connection(backend)
        connection.set_header("X-Bäd", "v")
        with pytest.raises(ProtocolError) as exc_info:
            connection.response_code
        assert isinstance(exc_info.value.cause, UnicodeEncodeError)
        assert backend.last_connection.written_data == b""

    def test_request_target_escaped(self, backend) -> None:
        backend.queue_response(build_response())
        connection = open_connection(backend, "http://example.com/a b/é")
        connection.response_code
        line, _, _ = split_request(backend.last_connection.written_data)
        assert line == "GET /a%20b/%C3%A9 HTTP/1.1"

    def test_fixed_length_body(self, backend) -> None:
        """Test that fixed-length bodies are sent as they are written."""
        backend.queue_response(build_response(201, "Created"))
        connection = open_connection(backend, method="PUT")
        connection.set_fixed_length_streaming_mode(11)
        connection.do_output = True

        output = connection.get_output_stream()
        stream = backend.last_connection
        head_writes = len(stream.write_calls)
        assert connection.fixed_length == 11
        output.write(b"hello ")
        output.write(b"world")
        assert stream.write_calls[head_writes:] == [b"hello ", b"world"]
        output.close()

        assert connection.response_code == 201
        line, headers, body = split_request(stream.written_data)
        assert line == "PUT /path HTTP/1.1"
        assert headers["content-length"] == "11"
        assert body == b"hello world"

    def test_fixed_length_overflow(self, backend) -> None:
        connection = open_connection(backend, method="POST")
        connection.set_fixed_length_streaming_mode(3)
        connection.do_output = True
        output = connection.get_output_stream()
        with pytest.raises(ProtocolError, match="exceeds declared length"):
            output.write(b"toolong")
        output.close()

    def test_fixed_length_underflow(self, backend) -> None:
        connection = open_connection(backend, method="POST")
        connection.set_fixed_length_streaming_mode(10)
        connection.do_output = True
        output = connection.get_output_stream()
        output.write(b"short")
        with pytest.raises(ProtocolError, match="5 bytes, 10 declared"):
            output.close()

    def test_buffered_body(self, backend) -> None:
        """Test that unknown-length bodies get a computed Content-Length."""
        backend.queue_response(build_response())
        connection = open_connection(backend, method="POST")
        connection.set_header("Transfer-Encoding", "chunked")
        connection.set_header("Content-Length", "999")
        connection.do_output = True

        output = connection.get_output_stream()
        output.write(b"abc")
        output.write(b"def")
        output.close()
        assert connection.get_output_stream() is output
        assert backend.last_connection.written_data == b""

        connection.response_code
        _, headers, body = split_request(backend.last_connection.written_data)
        assert headers["content-length"] == "6"
        assert "transfer-encoding" not in headers
        assert body == b"abcdef"

    def test_write_after_close(self, backend) -> None:
        connection = open_connection(backend, method="POST")
        connection.do_output = True
        output = connection.get_output_stream()
        output.close()
        with pytest.raises(StreamError):
            output.write(b"late")

    def test_output_disabled(self, backend) -> None:
        with pytest.raises(ProtocolError, match="Output is not enabled"):
            open_connection(backend).get_output_stream()

    def test_write_failure(self, backend) -> None:
        connection = open_connection(backend)
        connection.connect()
        backend.last_connection.write = MagicMock(side_effect=BrokenPipeError("gone"))
        with pytest.raises(TransportError, match="Sending request") as exc_info:
            connection.response_code
        assert isinstance(exc_info.value.cause, BrokenPipeError)

    def test_stream_closed_underneath(self, backend) -> None:
        connection = open_connection(backend)
        connection.connect()
        backend.last_connection.close()
        with pytest.raises(TransportError, match="Stream is closed") as exc_info:
            connection.response_code
        assert isinstance(exc_info.value.cause, OSError)


class TestResponseParsing:
    """Test reading the status line, headers and body."""

    def test_status_and_headers(self, backend) -> None:
        backend.queue_response(
            build_response(
                404,
                "Not Found",
                headers=[("X-Trace", "a"), ("X-Trace", "b")],
                body=b"missing",
                content_type="text/plain; charset=utf-8",
            )
        )
        connection = open_connection(backend)
        assert connection.response_code == 404
        assert connection.response_message == "Not Found"
        assert connection.content_type == "text/plain; charset=utf-8"
        assert connection.content_length == 7
        assert connection.response_headers["x-trace"] == "a, b"
        assert connection.state == ConnectionState.RESPONSE_RECEIVED

    def test_body(self, backend) -> None:
        backend.queue_response(build_response(body=b"hello world"))
        connection = open_connection(backend)
        body = connection.get_input_stream()
        assert body.read(5) == b"hello"
        assert body.read() == b" world"
        assert body.read() == b""

    def test_body_in_small_pieces(self) -> None:
        backend = MockNetworkBackend(chunk_size=3)
        backend.queue_response(build_response(body=b"x" * 100, content_type="text/plain"))
        connection = open_connection(backend)
        assert connection.content_type == "text/plain"
        assert connection.get_input_stream().read() == b"x" * 100

    def test_chunked_body(self, backend) -> None:
        backend.queue_response(
            build_response(
                headers=[("Transfer-Encoding", "chunked")],
                body=b"5\r\nhello\r\n6\r\n world\r\n0\r\n\r\n",
            )
        )
        connection = open_connection(backend)
        assert connection.content_length == -1
        assert connection.get_input_stream().read() == b"hello world"

    def test_no_content_type(self, backend) -> None:
        backend.queue_response(build_response())
        assert open_connection(backend).content_type == ""

    def test_informational_response_skipped(self, backend) -> None:
        backend.queue_response(
            b"HTTP/1.1 100 Continue\r\n\r\n" + build_response(body=b"done")
        )
        connection = open_connection(backend)
        assert connection.response_code == 200
        assert connection.get_input_stream().read() == b"done"

    def test_head_response_has_no_body(self, backend) -> None:
        backend.queue_response(
            b"HTTP/1.1 200 OK\r\nContent-Length: 42\r\nContent-Type: text/plain\r\n\r\n"
        )
        connection = open_connection(backend, method="HEAD")
        assert connection.content_length == 42
        assert connection.get_input_stream().read() == b""

    def test_empty_reply(self, backend) -> None:
        connection = open_connection(backend)
        with pytest.raises(ProtocolError):
            connection.response_code

    def test_garbage_reply(self, backend) -> None:
        backend.queue_response(b"this is not http\r\n\r\n")
        connection = open_connection(backend)
        with pytest.raises(ProtocolError):
            connection.response_code

    def test_truncated_body(self, backend) -> None:
        backend.queue_response(b"HTTP/1.1 200 OK\r\nContent-Length: 10\r\n\r\nshort")
        body = open_connection(backend).get_input_stream()
        with pytest.raises(ProtocolError):
            body.read()

    def test_read_timeout(self, backend) -> None:
        connection = open_connection(backend, read_timeout=0.5)
        connection.connect()
        backend.last_connection.read = MagicMock(side_effect=socket.timeout("timed out"))
        with pytest.raises(TimeoutError) as exc_info:
            connection.response_code
        assert exc_info.value.timeout == 0.5

    def test_input_disabled(self, backend) -> None:
        connection = open_connection(backend)
        connection.do_input = False
        with pytest.raises(ProtocolError, match="Input is not enabled"):
            connection.get_input_stream()


class TestDisconnect:
    """Test closing the connection."""

    def test_disconnect(self, backend) -> None:
        backend.queue_response(build_response(body=b"data"))
        connection = open_connection(backend)
        connection.response_code
        connection.disconnect()
        connection.disconnect()
        assert connection.is_closed
        assert backend.last_connection.is_closed
        assert connection.metrics["state"] == "closed"
        assert connection.metrics["bytes_sent"] > 0
        assert connection.metrics["bytes_received"] > 0

    def test_disconnect_before_connect(self, backend) -> None:
        connection = open_connection(backend)
        connection.disconnect()
        assert connection.is_closed
        with pytest.raises(ProtocolError, match="Connection is closed"):
            connection.response_code

    def test_response_kept_after_disconnect(self, backend) -> None:
        backend.queue_response(build_response(204, "No Content"))
        connection = open_connection(backend)
        connection.response_code
        connection.disconnect()
        assert connection.response_code == 204
