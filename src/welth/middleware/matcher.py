"""Path matchers for the middleware chain.

Learn: Patterns are full-match regexes over the URL path, written the
way the frontend's route config writes them ("/dashboard(.*)").
MIDDLEWARE_PATHS decides whether the chain runs at all: it skips
framework internals and static files, but always covers /api and /trpc.
"""

import re
from typing import Callable, Iterable

STATIC_EXTENSIONS = (
    r"html?|css|js(?!on)|jpe?g|webp|png|gif|svg|ttf|woff2?|ico|csv|docx?|xlsx?|zip|webmanifest"
)

MIDDLEWARE_PATHS = (
    rf"/((?!_next|[^?]*\.(?:{STATIC_EXTENSIONS})).*)",
    r"/(api|trpc)(.*)",
)


def create_route_matcher(patterns: Iterable[str]) -> Callable[[str], bool]:
    """Return a predicate that is True when a path fully matches any pattern."""
    compiled = [re.compile(p) for p in patterns]

    def matches(path: str) -> bool:
        return any(p.fullmatch(path) for p in compiled)

    return matches


runs_middleware = create_route_matcher(MIDDLEWARE_PATHS)
