import asyncio
import logging

from fastapi import status
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from servimatch.config import settings

logger = logging.getLogger("servimatch")


class RequestTimeoutMiddleware:
    """
    Per-request deadline as plain ASGI middleware.

    The endpoint runs inside the awaited call, so hitting the deadline
    cancels it. Cancellation unwinds the get_db dependency, whose
    session close rolls back anything not yet committed.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await asyncio.wait_for(
                self.app(scope, receive, send_wrapper),
                timeout=settings.REQUEST_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.warning("Request timed out: %s %s", scope.get("method"), scope.get("path"))
            if response_started:
                # Headers already went out, nothing sensible left to send
                raise
            response = JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content={"detail": "Request timed out"},
            )
            await response(scope, receive, send)
