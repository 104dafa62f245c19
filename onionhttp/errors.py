from typing import Optional

class HttpClientError(Exception):
    """Base exception for failures while sending a request."""
    stage = "client"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage

class MissingHostError(HttpClientError):
    """Raised when the request url carries no host."""
    stage = "resolve host"

class EncodingError(HttpClientError):
    """Raised when a request cannot be put on the wire."""
    stage = "serialize request"

class TransportError(HttpClientError):
    """Raised when the transport fails to deliver the request or the reply."""
    stage = "transmit request"

class DecodingError(HttpClientError):
    """Raised when the reply is not a complete, well-formed HTTP/1.x response."""
    stage = "deserialize response"
