"""
Receiving endpoint.

A single POST route at ``/`` accepting the form fields ``processor`` (a
serialized envelope) or ``test`` (a liveness check). Every answer is a
serialized result; bad input never produces an HTTP error.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, FastAPI, Form, Request, Response

from remotecmd.api import create_dispatcher, liveness_text, process_text
from remotecmd.dispatcher import Dispatcher
from remotecmd.errors import ProtocolError
from remotecmd.results import CommandResult
from remotecmd.wire import serialize_result

logger = logging.getLogger(__name__)

XML_MEDIA_TYPE = "application/xml"

router = APIRouter(tags=["remotecmd"])


@router.post("/")
async def process(
    request: Request,
    processor: Optional[str] = Form(None),
    test: Optional[str] = Form(None),
) -> Response:
    """Run the posted envelope, or answer a liveness check."""
    if test is not None:
        return Response(liveness_text(), media_type=XML_MEDIA_TYPE)

    if not processor:
        error = ProtocolError("no processor field in request")
        return Response(serialize_result(CommandResult.from_exception(error)), media_type=XML_MEDIA_TYPE)

    dispatcher: Dispatcher = request.app.state.dispatcher
    return Response(await process_text(dispatcher, processor), media_type=XML_MEDIA_TYPE)


def create_app(dispatcher: Dispatcher | None = None) -> FastAPI:
    """
    Create the FastAPI application serving the endpoint.

    Args:
        dispatcher: Dispatcher to run commands with. Defaults to one built
            from ``Settings.from_env()``.
    """
    app = FastAPI(title="remotecmd")
    app.state.dispatcher = dispatcher if dispatcher is not None else create_dispatcher()
    app.include_router(router)
    return app
