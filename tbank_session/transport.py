"""
Traffic Recording Transport Module

Wraps any httpx transport and writes a wire-level dump of every request and
response (status line, headers and body) to a diagnostic sink. The wrapped
transport sees the request exactly as the client built it, and the caller
gets back the response object the wrapped transport returned, its body
buffered into a fresh stream the client has not read yet.
"""

import sys
import time
from typing import Callable, Optional

import httpx

from .config import TBankConfig, get_config
from .errors import TrafficDumpError
from .logging_config import get_logger

logger = get_logger("tbank.transport")

Sink = Callable[[bytes], None]


def stdout_sink(data: bytes) -> None:
    """Write a dump followed by a newline to the current sys.stdout"""
    stream = sys.stdout
    buffer = getattr(stream, "buffer", None)
    if buffer is None:
        stream.write(data.decode("utf-8", errors="replace") + "\n")
        stream.flush()
        return

    stream.flush()
    buffer.write(data + b"\n")
    buffer.flush()


def _dump_message(start_line: str, headers: httpx.Headers, body: bytes) -> bytes:
    lines = [start_line.encode("ascii")]
    for name, value in headers.raw:
        lines.append(name + b": " + value)
    return b"\r\n".join(lines) + b"\r\n\r\n" + body


def dump_request(request: httpx.Request) -> bytes:
    """
    Serialize an outgoing request as it goes on the wire.

    Reading the body buffers it in the request, so it can still be sent.
    """
    body = request.read()
    target = request.url.raw_path.decode("ascii")
    return _dump_message(f"{request.method} {target} HTTP/1.1", request.headers, body)


def dump_response(response: httpx.Response) -> bytes:
    """
    Serialize a response, reading its body into memory.

    The body is read through the response's content decoding, so a gzip
    body is dumped decompressed. This consumes the response stream; the
    recorder dumps a detached copy instead of the response it returns.
    """
    body = response.read()
    start_line = f"{response.http_version} {response.status_code} {response.reason_phrase}"
    return _dump_message(start_line.rstrip(), response.headers, body)


def _buffer_response(response: httpx.Response) -> httpx.Response:
    """
    Read the raw body of a response and give it back a fresh, unread stream.

    Returns a detached copy carrying the same status, headers and body, for
    dumping. The response itself stays unread, so the client still drives it.
    """
    stream = response.stream
    try:
        raw = b"".join(stream)
    finally:
        stream.close()

    response.stream = httpx.ByteStream(raw)
    return httpx.Response(
        response.status_code,
        headers=response.headers,
        stream=httpx.ByteStream(raw),
        extensions=response.extensions,
    )


class TrafficRecorder(httpx.BaseTransport):
    """Transport decorator that dumps every exchange to a sink"""

    def __init__(self, transport: Optional[httpx.BaseTransport] = None,
                 sink: Optional[Sink] = None):
        self.transport = transport if transport is not None else httpx.HTTPTransport()
        self.sink = sink if sink is not None else stdout_sink

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        try:
            request_dump = dump_request(request)
        except Exception as e:
            raise TrafficDumpError("dump request", str(e)) from e

        self.sink(request_dump)

        start = time.time()
        response = self.transport.handle_request(request)
        latency_ms = (time.time() - start) * 1000

        try:
            response_dump = dump_response(_buffer_response(response))
        except Exception as e:
            response.close()
            raise TrafficDumpError("dump response", str(e)) from e

        self.sink(response_dump)

        logger.debug(
            "%s %s -> %d (%.1f ms)",
            request.method, request.url, response.status_code, latency_ms
        )
        return response

    def close(self) -> None:
        """Close the wrapped transport"""
        self.transport.close()


def build_http_client(config: Optional[TBankConfig] = None,
                      transport: Optional[httpx.BaseTransport] = None,
                      sink: Optional[Sink] = None) -> httpx.Client:
    """
    Build the HTTP client used for login and API calls.

    Args:
        config: Configuration; the global configuration by default
        transport: Underlying transport; httpx's default network transport if omitted
        sink: Dump sink when traffic recording is enabled; stdout by default

    Returns:
        httpx.Client whose traffic goes through a TrafficRecorder when
        dump_traffic is enabled
    """
    config = config or get_config()
    if config.dump_traffic:
        transport = TrafficRecorder(transport, sink)

    return httpx.Client(
        base_url=config.base_url,
        timeout=config.http_timeout,
        transport=transport,
    )
