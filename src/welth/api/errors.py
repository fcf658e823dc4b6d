"""ActionResult → HTTP translation."""

from fastapi import HTTPException

from welth.services.results import ActionResult, ErrorKind

STATUS_BY_KIND = {
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.POLICY_BLOCKED: 403,
    ErrorKind.VALIDATION_FAILED: 422,
    ErrorKind.QUERY_FAILED: 500,
}


def unwrap(result: ActionResult):
    """Return the result's data or raise the matching HTTPException."""
    if result.ok:
        return result.data

    error = result.error
    headers = {}
    if error.kind == ErrorKind.UNAUTHORIZED:
        headers["WWW-Authenticate"] = "Bearer"
    if error.kind == ErrorKind.RATE_LIMITED:
        headers["Retry-After"] = str(error.details.get("reset", 60))
        headers["X-RateLimit-Remaining"] = str(error.details.get("remaining", 0))

    raise HTTPException(
        status_code=STATUS_BY_KIND[error.kind],
        detail={"kind": error.kind.value, "message": error.message, **error.details},
        headers=headers or None,
    )
