import logging
import tomllib
from dataclasses import dataclass, fields
from typing import Optional

logger = logging.getLogger(__name__)

@dataclass
class Config:
    proxy_addr: str = '127.0.0.1'
    proxy_port: int = 9050
    port: int = 443
    use_tls: bool = True
    timeout: float = 30.0
    recv_buffer_size: int = 65535
    max_headers: int = 16
    line_terminator: str = '\n'
    tls_keylog: bool = False

conf = Config()

def configure_from_file(path: Optional[str]):
    if path is not None:
        with open(path, "rb") as f:
            conf_override = tomllib.load(f)
    else:
        conf_override = {}

    known = {f.name for f in fields(Config)}
    for k, v in conf_override.items():
        if k not in known:
            raise ValueError(f"unknown config key: {k}")
        setattr(conf, k, v)

    if conf.line_terminator not in ('\n', '\r\n'):
        raise ValueError(f"unsupported line terminator: {conf.line_terminator!r}")

    logger.log(logging.DEBUG, f"config: {conf}")
