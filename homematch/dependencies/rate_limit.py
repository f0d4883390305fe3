from fastapi import Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter


def rate_limit(times: int, seconds: int = 60):
    """RateLimiter that becomes a no-op when the limiter was never initialised.

    Startup skips ``FastAPILimiter.init`` if Redis is unreachable; the plain
    ``RateLimiter`` dependency would fail every request in that case.
    """
    limiter = RateLimiter(times=times, seconds=seconds)

    async def dependency(request: Request, response: Response):
        if FastAPILimiter.redis is None:
            return
        await limiter(request, response)

    return dependency
