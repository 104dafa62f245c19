import logging
from typing import Optional
from urllib.parse import urlsplit

from onionhttp.codec import encode_request, decode_response
from onionhttp.config import conf
from onionhttp.errors import HttpClientError, MissingHostError, EncodingError, TransportError, DecodingError
from onionhttp.interface import Request, Response, DirectoryCache
from onionhttp.transport import Transport, SocksTransport

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {'http': 80, 'https': 443}

def request_authority(url: str) -> str:
    """
    Returns "host:port" for `url`, the port being the one the url names or
    the default of its scheme; bare host when neither is known.
    """
    try:
        parts = urlsplit(url)
        host, port = parts.hostname, parts.port
    except ValueError as e:
        raise MissingHostError(f"invalid url {url!r}: {e}") from e
    if not host:
        raise MissingHostError(f"no host found in {url!r}")

    if ':' in host:
        host = f"[{host}]"
    if port is None:
        port = DEFAULT_PORTS.get(parts.scheme)
    return host if port is None else f"{host}:{port}"

class Client:
    def __init__(
        self,
        dir_cache: DirectoryCache,
        transport: Optional[Transport] = None,
        eol: Optional[str] = None,
        max_headers: Optional[int] = None,
    ):
        self.dir_cache = dir_cache
        self.transport = SocksTransport() if transport is None else transport
        self.eol = conf.line_terminator if eol is None else eol
        self.max_headers = conf.max_headers if max_headers is None else max_headers

    def send(self, req: Request) -> Response:
        """ Sends `req` to the host named in its url and returns the response """
        logger.log(logging.DEBUG, f"request: {req}")

        host = request_authority(req.url)
        scheme = urlsplit(req.url).scheme
        if not self.transport.accepts_scheme(scheme):
            raise EncodingError(f"scheme {scheme!r} not supported by {type(self.transport).__name__}")

        try:
            raw_req = encode_request(req, self.eol)
        except EncodingError as e:
            e.add_note("serialize request")
            raise

        try:
            req_text = raw_req.decode('utf-8')
        except UnicodeDecodeError as e:
            raise EncodingError(f"encode serialized as utf-8: {e}") from e

        try:
            resp_text = self.transport.transmit(host, req_text, self.dir_cache)
        except HttpClientError as e:
            e.add_note("transmit request")
            raise
        except Exception as e:
            raise TransportError(f"transmit request to {host}: {e}") from e

        try:
            resp = decode_response(resp_text.encode('utf-8'), self.max_headers)
        except DecodingError as e:
            e.add_note("deserialize response")
            raise

        logger.log(logging.DEBUG, f"response: {resp}")
        return resp
