"""Request snapshot passed to guards.

Learn: Guards never see the Starlette Request directly. Services only
hold a RequestDetails, so they can be driven from tests without ASGI.
"""

from dataclasses import dataclass, field
from typing import Optional

from starlette.requests import Request


@dataclass(frozen=True)
class RequestDetails:
    ip: str = "unknown"
    method: str = "GET"
    path: str = "/"
    query: str = ""
    host: str = ""
    scheme: str = "http"
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def user_agent(self) -> Optional[str]:
        return self.headers.get("user-agent")

    @classmethod
    def from_request(cls, request: Request) -> "RequestDetails":
        return cls(
            ip=client_ip(request),
            method=request.method,
            path=request.url.path,
            query=request.url.query,
            host=request.url.hostname or "",
            scheme=request.url.scheme,
            headers={k.lower(): v for k, v in request.headers.items()},
        )


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"
