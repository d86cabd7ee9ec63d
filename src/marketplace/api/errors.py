"""HTTP mapping for marketplace errors.

Protean's own handlers cover ``ValidationError`` (400) and
``ObjectNotFoundError`` (404). Marketplace errors are mapped by kind, and
a version clash caught when the unit of work commits is a 409 conflict.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError
from protean.integrations.fastapi import register_exception_handlers as register_protean_handlers

from marketplace.shared.errors import MarketplaceError
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

STATUS_BY_KIND = {
    "conflict": 409,
    "business_rule": 422,
    "integrity": 500,
}


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, 422)
    if status_code >= 500:
        logger.error("request_failed", path=request.url.path, kind=exc.kind, messages=exc.messages)
    return JSONResponse(status_code=status_code, content={"error": exc.kind, "messages": exc.messages})


async def stale_write_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    logger.warning("stale_write_rejected", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=STATUS_BY_KIND["conflict"],
        content={
            "error": "conflict",
            "messages": {"status": ["Record was changed by another request, reload it and retry"]},
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    register_protean_handlers(app)
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
    app.add_exception_handler(ExpectedVersionError, stale_write_handler)
