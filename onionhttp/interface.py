from enum import Enum
from typing import Optional, Union
from dataclasses import dataclass, field

HeaderPart = Union[str, bytes]

class Version(Enum):
    HTTP_10 = "HTTP/1.0"
    HTTP_11 = "HTTP/1.1"

    def __str__(self):
        return self.value

def _find_headers(headers, name: str) -> list:
    name = name.lower()
    found = []
    for k, v in headers:
        key = k.decode() if isinstance(k, bytes) else k
        if key.lower() == name:
            found.append(v)
    return found

@dataclass
class Request:
    method: str
    url: str
    headers: list[tuple[HeaderPart, HeaderPart]] = field(default_factory=list)
    body: bytes = b''
    version: Version = Version.HTTP_11

    def get_header(self, name: str) -> Optional[HeaderPart]:
        found = _find_headers(self.headers, name)
        return found[0] if found else None

    def get_headers(self, name: str) -> list[HeaderPart]:
        return _find_headers(self.headers, name)

@dataclass
class Response:
    status_code: int
    version: Version
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes = b''
    reason: str = ''

    def get_header(self, name: str) -> Optional[str]:
        found = _find_headers(self.headers, name)
        return found[0] if found else None

    def get_headers(self, name: str) -> list[str]:
        return _find_headers(self.headers, name)

@dataclass(frozen=True)
class DirectoryCache:
    """ Routing metadata handed to the transport as-is """
    tmp_dir: Optional[str] = None
    nodes: Optional[tuple[str, ...]] = None
    relays: Optional[tuple[str, ...]] = None
