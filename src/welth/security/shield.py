"""Shield signatures: common attack patterns in URLs and headers.

Learn: Values are URL-decoded before matching, so "%3Cscript" and
"<script" are caught alike. The first matching signature wins.
"""

import re
from typing import Optional
from urllib.parse import unquote_plus

from welth.security.request import RequestDetails

SIGNATURES: tuple[tuple[str, re.Pattern], ...] = (
    (
        "SQL_INJECTION",
        re.compile(
            r"\bunion\b[\s\S]*\bselect\b"
            r"|'\s*or\s+['\"]?\w+['\"]?\s*=\s*['\"]?\w+"
            r"|;\s*(drop|truncate|delete|insert|update)\s+\w+"
            r"|\b(sleep|pg_sleep|benchmark)\s*\(\s*\d+"
            r"|\binformation_schema\b",
            re.IGNORECASE,
        ),
    ),
    (
        "XSS",
        re.compile(
            r"<\s*script\b"
            r"|javascript\s*:"
            r"|<[^>]*\bon(error|load|mouseover|focus|click)\s*="
            r"|<\s*iframe\b",
            re.IGNORECASE,
        ),
    ),
    (
        "PATH_TRAVERSAL",
        re.compile(r"\.\./|\.\.\\|/etc/passwd|\bwin\.ini\b", re.IGNORECASE),
    ),
    (
        "COMMAND_INJECTION",
        re.compile(
            r"[;|]\s*(cat|ls|whoami|wget|curl|bash|sh|nc)\b"
            r"|\$\(\s*\w+"
            r"|`[^`]+`",
            re.IGNORECASE,
        ),
    ),
)

INSPECTED_HEADERS = ("user-agent", "referer")


def scan(details: RequestDetails) -> Optional[tuple[str, str]]:
    """Return (threat, location) for the first suspicious value, else None."""
    targets = [("path", details.path), ("query", details.query)]
    targets += [
        (f"header:{name}", details.headers[name])
        for name in INSPECTED_HEADERS
        if name in details.headers
    ]
    for location, raw in targets:
        if not raw:
            continue
        value = unquote_plus(raw)
        for threat, pattern in SIGNATURES:
            if pattern.search(value):
                return threat, location
    return None
