import logging
import threading

import anyio

from erp_gateway.client import cancellation

logger = logging.getLogger(__name__)


def _has_empty_body(scope) -> bool:
    headers = dict(scope.get("headers") or [])
    if b"transfer-encoding" in headers:
        return False
    return headers.get(b"content-length", b"0").strip() in (b"", b"0")


class DisconnectWatch:
    """
    ASGI middleware that flags the request as cancelled when the client
    disconnects. Once the body has been read, the server's receive channel
    is watched for `http.disconnect`; handlers still waiting to call the ERP
    then get RequestCancelled instead of issuing the call.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        cancelled = threading.Event()
        disconnected = anyio.Event()
        body_read = anyio.Event()
        empty_body = _has_empty_body(scope)
        if empty_body:
            body_read.set()
        state = {"empty_sent": False, "responded": False}

        def mark_disconnected():
            disconnected.set()
            # servers report a disconnect once the response is complete too
            if state["responded"] or cancelled.is_set():
                return
            logger.info("Client disconnected from %s %s", scope.get("method"), scope.get("path"))
            cancelled.set()

        async def app_receive():
            if not body_read.is_set():
                message = await receive()
                if message["type"] == "http.disconnect":
                    mark_disconnected()
                elif not message.get("more_body", False):
                    body_read.set()
                return message
            if empty_body and not state["empty_sent"]:
                # the watcher owns the server channel; hand the app the empty body itself
                state["empty_sent"] = True
                return {"type": "http.request", "body": b"", "more_body": False}
            await disconnected.wait()
            return {"type": "http.disconnect"}

        async def app_send(message):
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                state["responded"] = True
            await send(message)

        async def watch():
            await body_read.wait()
            while True:
                message = await receive()
                if message["type"] == "http.disconnect":
                    mark_disconnected()
                    return

        error = None
        async with anyio.create_task_group() as tg:
            tg.start_soon(watch)
            try:
                with cancellation(cancelled):
                    await self.app(scope, app_receive, app_send)
            except Exception as e:
                # raised below so it is not wrapped in an ExceptionGroup
                error = e
            finally:
                tg.cancel_scope.cancel()
        if error is not None:
            raise error
