"""URL helpers used for route matching."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from loopmock.runtime.client import RequestOptions

# "GET:http://..." or "GET:/path", but not "http://..." or "localhost:8080"
_METHOD_PREFIX = re.compile(r"^([A-Za-z]+):(?=[A-Za-z][A-Za-z0-9+.\-]*://|/(?!/))")


def build_url(options: RequestOptions | Any, pathname: str | None = None) -> str:
    """Rebuild the URL a request was made to.

    ``href`` is used verbatim when the request was made from a full URL
    string. Otherwise: ``protocol//hostname[:port]pathname``, with the hostname
    falling back to ``host`` and then ``localhost``.
    """
    href = getattr(options, "href", None)
    if href:
        return href

    protocol = getattr(options, "protocol", None) or "http:"
    hostname = getattr(options, "hostname", None) or getattr(options, "host", None) or "localhost"
    port = getattr(options, "port", None)
    if pathname is None:
        path = getattr(options, "path", None) or "/"
        pathname = path.split("?", 1)[0] or "/"

    hostport = f"{hostname}:{port}" if port else hostname
    return f"{protocol}//{hostport}{pathname}"


@dataclass(frozen=True)
class AnnotatedURL:
    """A URL optionally prefixed with an HTTP method, e.g. ``POST:https://host/path``."""

    method: str | None
    scheme: str
    hostname: str | None
    port: int | None
    path: str
    query: str
    fragment: str
    href: str

    @property
    def pathname(self) -> str:
        return self.path or "/"


def parse_annotated_url(text: str) -> AnnotatedURL:
    """Split an optional ``METHOD:`` prefix off ``text`` and parse the rest."""
    method = None
    match = _METHOD_PREFIX.match(text)
    if match:
        method = match.group(1).upper()
        text = text[match.end():]

    parts = urlsplit(text)
    return AnnotatedURL(
        method=method,
        scheme=parts.scheme,
        hostname=parts.hostname,
        port=parts.port,
        path=parts.path,
        query=parts.query,
        fragment=parts.fragment,
        href=text,
    )
