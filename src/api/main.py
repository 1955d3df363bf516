"""FastAPI application entry point."""
import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from api.routers import bookmarks, events, health, users
from core.config import get_settings
from core.redis import RedisClient
from services.change_feed import ChangeFeed, set_change_feed


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()

    # Startup: Connect to Redis
    redis_client = RedisClient(
        url=app_settings.redis_url,
        enabled=app_settings.redis_enabled,
        pool_size=app_settings.redis_pool_size,
    )
    await redis_client.connect()

    # Startup: Change feed, relayed through Redis when it is available
    feed = ChangeFeed(redis_client, channel=app_settings.change_feed_channel)
    set_change_feed(feed)
    relay_task = asyncio.create_task(feed.run_relay())

    yield

    # Shutdown: Stop the relay, then close Redis
    relay_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await relay_task
    set_change_feed(ChangeFeed())
    await redis_client.close()


SECURITY_HEADERS: dict[str, str] = {
    # HSTS: enforce HTTPS for 1 year, including subdomains
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    # API responses are never framed
    "X-Frame-Options": "DENY",
}


class SecurityHeadersMiddleware:
    """
    Add security headers to every HTTP response.

    Wraps ASGI send directly, so streamed responses pass through unbuffered.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in SECURITY_HEADERS.items():
                    headers[name] = value
            await send(message)

        await self.app(scope, receive, send_with_headers)



app_settings = get_settings()

app = FastAPI(
    title="Bookmarks API",
    description="A personal bookmark manager with live change events.",
    version="0.1.0",
    lifespan=lifespan,
)

# Security headers middleware (runs after CORS, adds headers to responses)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(users.router)
app.include_router(bookmarks.router)
app.include_router(events.router)
