import logging
import os
import re
import socket
import ssl
import socks
from abc import ABC, abstractmethod
from typing import Optional

from onionhttp import stat
from onionhttp.config import conf
from onionhttp.errors import TransportError
from onionhttp.interface import DirectoryCache

logger = logging.getLogger(__name__)

HEAD_END_PATTERN: re.Pattern = re.compile(rb"\r?\n\r?\n")
CONTENT_LENGTH_PATTERN: re.Pattern = re.compile(rb"^content-length:[ \t]*([0-9]+)[ \t]*\r?$", re.IGNORECASE | re.MULTILINE)

class Transport(ABC):
    """Sends a serialized request to a host and returns the raw reply."""

    def accepts_scheme(self, scheme: str) -> bool:
        """ Whether urls with `scheme` can be delivered by this transport """
        return True

    @abstractmethod
    def transmit(self, host: str, request_text: str, dir_cache: DirectoryCache) -> str:
        """
        Deliver `request_text` to `host` and wait for the complete reply.

        Args:
            host: Target host name, optionally with ":port"; never resolved locally
            request_text: Serialized HTTP/1.x request
            dir_cache: Routing metadata, passed through unchanged

        Returns:
            The fully buffered HTTP/1.x response

        Raises:
            TransportError: If the request could not be delivered
        """
        pass

def split_host_port(value: str, default_port: Optional[int] = None) -> tuple[str, int]:
    """
    Splits "host:port", "[v6addr]:port" or, with a default port, a bare host.
    Brackets around IPv6 addresses are removed.
    """
    if value.startswith('['):
        addr, sep, rest = value[1:].partition(']')
        if not sep:
            raise TransportError(f"invalid address: {value!r}")
        port = rest[1:] if rest.startswith(':') else None
        if rest and port is None:
            raise TransportError(f"invalid address: {value!r}")
    elif value.count(':') == 1:
        addr, _, port = value.partition(':')
    else:
        # bare host name or unbracketed IPv6 address
        addr, port = value, None

    if port is None:
        port = None if default_port is None else str(default_port)
    if not addr or port is None or not port.isdigit():
        raise TransportError(f"invalid address: {value!r}")
    return addr, int(port)

def parse_relay(relay: str) -> tuple[str, int]:
    return split_host_port(relay)

def head_complete(buf: bytes) -> int:
    """ Returns the offset of the body, or -1 while the header section is incomplete """
    start = len(buf) - len(buf.lstrip(b'\r\n'))
    m = HEAD_END_PATTERN.search(buf, start)
    return -1 if m is None else m.end()

def reply_complete(buf: bytes) -> bool:
    """ True once the header section and Content-Length bytes of body are buffered """
    body_start = head_complete(buf)
    if body_start < 0:
        return False
    m = CONTENT_LENGTH_PATTERN.search(buf, 0, body_start)
    if m is None:
        # no length given, the body ends when the server closes
        return False
    return len(buf) - body_start >= int(m.group(1))

class SocksTransport(Transport):
    """
    Sends requests through a SOCKS5 proxy (e.g. a local Tor client).
    Host names are resolved by the proxy, never locally.
    """
    def __init__(self, proxy_config: Optional[tuple[str, int]] = None):
        self.proxy_config = proxy_config

    def accepts_scheme(self, scheme: str) -> bool:
        return scheme == ('https' if conf.use_tls else 'http')

    def _proxy_for(self, dir_cache: DirectoryCache) -> tuple[str, int]:
        if dir_cache.relays:
            return parse_relay(dir_cache.relays[0])
        if self.proxy_config is not None:
            return self.proxy_config
        return (conf.proxy_addr, conf.proxy_port)

    def _tls_context(self, dir_cache: DirectoryCache) -> ssl.SSLContext:
        ctx = ssl.create_default_context()
        if conf.tls_keylog:
            if dir_cache.tmp_dir is None:
                logger.log(logging.WARNING, "TLS key log requested but no tmp_dir given, not logging keys")
            else:
                ctx.keylog_filename = os.path.join(dir_cache.tmp_dir, "keylog")
        return ctx

    def transmit(self, host: str, request_text: str, dir_cache: DirectoryCache) -> str:
        hostname, port = split_host_port(host, conf.port)
        proxy_addr, proxy_port = self._proxy_for(dir_cache)
        if dir_cache.nodes:
            logger.log(logging.DEBUG, f"{host}: directory cache lists {len(dir_cache.nodes)} nodes")
        logger.log(logging.DEBUG, f"{hostname}:{port}: connecting through {proxy_addr}:{proxy_port}")

        data = request_text.encode('utf-8')
        buf = bytearray()
        try:
            sock = socks.create_connection(
                (hostname, port),
                timeout=conf.timeout,
                proxy_type=socks.SOCKS5,
                proxy_addr=proxy_addr,
                proxy_port=proxy_port,
                proxy_rdns=True,
            )
            try:
                if conf.use_tls:
                    sock = self._tls_context(dir_cache).wrap_socket(sock, server_hostname=hostname)
                sock.sendall(data)
                stat.increase_total_sent(len(data))

                # stop at Content-Length, otherwise when the server closes
                try:
                    while (chunk := sock.recv(conf.recv_buffer_size)):
                        buf += chunk
                        stat.increase_total_received(len(chunk))
                        if reply_complete(buf):
                            break
                except socket.timeout:
                    if head_complete(buf) < 0:
                        raise
                    logger.log(logging.DEBUG, f"{host}: server idle after the header section, using buffered reply")
            finally:
                sock.close()
        except (socks.ProxyError, OSError) as e:
            raise TransportError(f"{host}: {e}") from e

        try:
            return bytes(buf).decode('utf-8')
        except UnicodeDecodeError as e:
            raise TransportError(f"{host}: response is not valid utf-8") from e
