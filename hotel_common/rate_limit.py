"""Per-client request throttling shared by every service."""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from .config import get_settings

settings = get_settings()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.default_rate_limit],
    enabled=settings.rate_limiting_enabled,
)


def apply_rate_limiter(app: FastAPI, service_name: str) -> None:
    """Attach the limiter; throttled requests get the same body shape as booking errors."""

    def rate_limit_handler(_: Request, exc: RateLimitExceeded) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content={"service": service_name, "code": "rate_limited", "detail": f"Rate limit exceeded: {exc.detail}"},
        )

    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
