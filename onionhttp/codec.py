# HTTP/1.x framing: Request -> bytes and bytes -> Response.
#
# Both directions use EOL ("\n") as line terminator by default. The decoder
# also accepts "\r\n" so it can read replies from regular servers.

import re
from typing import Optional
from urllib.parse import urlsplit

from onionhttp.errors import EncodingError, DecodingError
from onionhttp.interface import Request, Response, Version, HeaderPart

EOL = '\n'
MAX_HEADERS = 16

TOKEN_PATTERN: re.Pattern = re.compile(rb"[!#$%&'*+\-.\^_`|~0-9A-Za-z]+")
STATUS_LINE_PATTERN: re.Pattern = re.compile(rb"HTTP/1\.([0-9]) ([0-9]{3})(?: ([^\x00-\x08\x0a-\x1f\x7f]*))?")
# control characters other than HTAB are not allowed in field values
FIELD_VALUE_PATTERN: re.Pattern = re.compile(rb"[^\x00-\x08\x0a-\x1f\x7f]*")


def request_target(url: str) -> str:
    """
    Returns the path and query of `url`, the part that goes into the
    request line.
    """
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise EncodingError(f"invalid uri {url!r}: {e}") from e

    if parts.netloc:
        path = parts.path or '/'
    elif parts.path.startswith('/') and not parts.scheme:
        path = parts.path
    else:
        raise EncodingError(f"uri without path or query: {url!r}")

    # an empty query keeps its "?" marker
    if '?' in url.partition('#')[0]:
        path += '?' + parts.query
    return path


def _header_str(part: HeaderPart, what: str) -> str:
    if isinstance(part, bytes):
        try:
            return part.decode('utf-8')
        except UnicodeDecodeError as e:
            raise EncodingError(f"serialize header {what} as string: {e}") from e
    return part


def encode_request(req: Request, eol: str = EOL) -> bytes:
    """
    Serializes `req` into an HTTP/1.x message.

    Header names and values are written as given; no header is added, so
    the caller sets Host, Content-Length and friends itself.
    """
    if not req.method or not TOKEN_PATTERN.fullmatch(req.method.encode('utf-8')):
        raise EncodingError(f"invalid method: {req.method!r}")

    target = request_target(req.url)
    lines = [f"{req.method} {target} {req.version.value}{eol}"]

    for name, value in req.headers:
        name = _header_str(name, "name")
        if not name:
            raise EncodingError("missing header name")
        lines.append(f"{name}: {_header_str(value, 'value')}{eol}")

    lines.append(eol)
    return ''.join(lines).encode('utf-8') + bytes(req.body)


def _next_line(raw: bytes, pos: int) -> tuple[bytes, int]:
    idx = raw.find(b'\n', pos)
    if idx < 0:
        raise DecodingError("unfinished response")
    line = raw[pos:idx]
    if line.endswith(b'\r'):
        line = line[:-1]
    return line, idx + 1


def _parse_status_line(line: bytes) -> tuple[Version, int, str]:
    if not line.startswith(b'HTTP/'):
        raise DecodingError(f"no version in status line: {line[:32]!r}")

    m = STATUS_LINE_PATTERN.fullmatch(line)
    if m is None:
        if re.match(rb"HTTP/1\.[0-9] ", line) is None:
            raise DecodingError(f"unsupported version in status line: {line[:32]!r}")
        raise DecodingError(f"no status in status line: {line[:32]!r}")

    minor, code, reason = m.groups()
    if minor not in (b'0', b'1'):
        raise DecodingError(f"unsupported version: HTTP/1.{minor.decode()}")
    status_code = int(code)
    if not 100 <= status_code <= 599:
        raise DecodingError(f"invalid status code: {status_code}")

    version = Version.HTTP_10 if minor == b'0' else Version.HTTP_11
    return version, status_code, (reason or b'').decode('iso-8859-1')


def _parse_header_line(line: bytes) -> tuple[str, str]:
    if line[:1] in (b' ', b'\t'):
        raise DecodingError("obsolete line folding in header section")

    name, sep, value = line.partition(b':')
    if not sep:
        raise DecodingError(f"malformed header line: {line[:32]!r}")
    if not TOKEN_PATTERN.fullmatch(name):
        raise DecodingError(f"invalid header name: {name[:32]!r}")

    value = value.strip(b' \t')
    if not FIELD_VALUE_PATTERN.fullmatch(value):
        raise DecodingError(f"invalid header value for {name.decode()}")
    try:
        return name.decode('ascii'), value.decode('utf-8')
    except UnicodeDecodeError as e:
        raise DecodingError(f"create response: header {name.decode()} is not utf-8") from e


def decode_response(raw: bytes, max_headers: Optional[int] = None) -> Response:
    """
    Parses a fully buffered HTTP/1.x response.

    Everything after the blank line ending the header section is the body;
    Content-Length and Transfer-Encoding are not interpreted. At most
    `max_headers` header lines are accepted.
    """
    if max_headers is None:
        max_headers = MAX_HEADERS

    # skip empty lines preceding the status line
    pos = 0
    while True:
        line, pos = _next_line(raw, pos)
        if line:
            break

    version, status_code, reason = _parse_status_line(line)

    headers: list[tuple[str, str]] = []
    while True:
        line, pos = _next_line(raw, pos)
        if not line:
            break
        if len(headers) == max_headers:
            raise DecodingError(f"too many headers (max {max_headers})")
        headers.append(_parse_header_line(line))

    return Response(
        status_code=status_code,
        version=version,
        headers=headers,
        body=raw[pos:],
        reason=reason,
    )
