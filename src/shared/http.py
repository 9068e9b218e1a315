"""HTTP helpers shared by the API routers.

- ``register_storefront_exception_handlers`` renders ``StorefrontError``
  subclasses with their status code (protean's own handlers cover
  ValidationError and friends).
- ``client_identifier`` extracts the caller's address for rate limiting.
- ``rate_limited`` is a FastAPI dependency enforcing a named limiter profile.
"""

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from shared.errors import RateLimitExceeded, StorefrontError
from shared.ratelimit import RateLimitResult, get_rate_limiter


def register_storefront_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
        headers = None
        if isinstance(exc, RateLimitExceeded):
            headers = exc.result.headers()
            headers["Retry-After"] = str(exc.result.retry_after)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def client_identifier(request: Request) -> str:
    """Best-effort client address, honouring common proxy headers."""
    headers = request.headers
    for header in ("cf-connecting-ip", "x-real-ip"):
        if headers.get(header):
            return headers[header].strip()

    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    if request.client is not None:
        return request.client.host
    return "unknown"


def rate_limited(profile: str):
    """Build a dependency that admits the request under ``profile`` or raises 429."""

    def dependency(request: Request, response: Response) -> RateLimitResult:
        limiter = get_rate_limiter(profile)
        result = limiter.is_allowed(client_identifier(request))
        if not result.allowed:
            raise RateLimitExceeded(result, message=limiter.message)

        for name, value in result.headers().items():
            response.headers[name] = value
        return result

    return dependency
