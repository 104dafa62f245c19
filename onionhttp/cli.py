#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import argparse
import logging
import sys
from urllib.parse import urlsplit

from onionhttp import config, stat
from onionhttp.client import Client
from onionhttp.errors import HttpClientError
from onionhttp.interface import Request, Response, DirectoryCache, Version

logger = logging.getLogger(__name__)

def parse_header(value: str) -> tuple[str, str]:
    name, sep, val = value.partition(':')
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected 'Name: value', got {value!r}")
    return name.strip(), val.strip()

def parse_url(value: str) -> str:
    try:
        urlsplit(value).port
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid url {value!r}: {e}") from e
    return value

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog='onionhttp',
        description='Send one HTTP request through an anonymizing SOCKS proxy'
    )
    parser.add_argument('url', help='URL to fetch', type=parse_url)
    parser.add_argument('-X', '--method', help='Request method', default='GET')
    parser.add_argument('-H', '--header', help="Request header ('Name: value')",
                        type=parse_header, action='append', default=[])
    parser.add_argument('-d', '--data', help='Request body')
    parser.add_argument('--http10', help='Send an HTTP/1.0 request', action='store_true')
    parser.add_argument('--tmp-dir', help='Scratch directory for the transport')
    parser.add_argument('--node', help='Directory node (repeatable)', action='append')
    parser.add_argument('--relay', help='SOCKS relay as host:port (repeatable)', action='append')
    parser.add_argument('--config', help='Path to a config file (.toml)', required=False)
    parser.add_argument('--loglevel', help='Log level', default='INFO')
    return parser.parse_args(argv)

def host_header(url: str) -> str:
    """ Host header value for `url`, without any userinfo """
    parts = urlsplit(url)
    host = parts.hostname or ''
    if ':' in host:
        host = f"[{host}]"
    if host and parts.port is not None:
        host += f":{parts.port}"
    return host

def build_request(args) -> Request:
    headers = list(args.header)
    names = {name.lower() for name, _ in headers}
    if 'host' not in names:
        host = host_header(args.url)
        if host:
            headers.insert(0, ('Host', host))
    # the transport reads the reply until the server closes
    if 'connection' not in names:
        headers.append(('Connection', 'close'))

    body = b''
    if args.data is not None:
        body = args.data.encode('utf-8')
        if 'content-length' not in names:
            headers.append(('Content-Length', str(len(body))))

    return Request(
        method=args.method,
        url=args.url,
        headers=headers,
        body=body,
        version=Version.HTTP_10 if args.http10 else Version.HTTP_11,
    )

def build_dir_cache(args) -> DirectoryCache:
    return DirectoryCache(
        tmp_dir=args.tmp_dir,
        nodes=tuple(args.node) if args.node else None,
        relays=tuple(args.relay) if args.relay else None,
    )

def print_response(res: Response, out=None):
    out = sys.stdout if out is None else out
    out.write(f"{res.version} {res.status_code} {res.reason}\n")
    for name, value in res.headers:
        out.write(f"{name}: {value}\n")
    out.write("\n")
    out.write(res.body.decode('utf-8', errors='replace'))
    out.flush()

def main(argv=None) -> int:
    # configure logging & client-wide settings
    args = parse_args(argv)
    logging.basicConfig(level=args.loglevel)
    config.configure_from_file(args.config)
    scheme = urlsplit(args.url).scheme
    if scheme in ('http', 'https'):
        config.conf.use_tls = scheme == 'https'

    client = Client(build_dir_cache(args))
    request = build_request(args)

    logger.log(logging.INFO, f"> {request.method} {request.url}")
    try:
        response = client.send(request)
    except HttpClientError as e:
        logger.log(logging.ERROR, f"[{e.stage}] {e}")
        return 1
    finally:
        stat.log_stats()
    logger.log(logging.INFO, f"< {response.status_code} {request.url}")

    print_response(response)
    return 0

if __name__ == "__main__":
    sys.exit(main())
