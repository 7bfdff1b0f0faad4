"""
Response post-processing stages.

WHAT: A route class that runs an explicit list of payload processors on
the handler's JSON result before it is sent: field masking, version
reshaping.

WHY: Post-processing is a declared stage of the route, not a patched
``Response.json``. Routers opt in with ``APIRouter(route_class=...)`` and
the order of processors is visible at the call site.

HOW: ``PostProcessingRoute.get_route_handler`` wraps FastAPI's handler,
decodes the JSON body, folds it through ``processors`` and re-renders it,
keeping status code, cookies and headers. Non-JSON and streaming responses
pass through untouched.
"""

import json
import logging
from typing import Any, Callable, Sequence

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.responses import Response

from lexshield.middleware.request_context import request_api_version
from lexshield.security.field_protection import FieldProtector
from lexshield.security.reshape import V2, ResponseReshapeEngine


logger = logging.getLogger(__name__)


Processor = Callable[[Request, Any], Any]

_REPLACED_HEADERS = (b"content-length", b"content-type")


class PostProcessingRoute(APIRoute):
    """APIRoute running ``processors`` over JSON responses."""

    processors: Sequence[Processor] = ()

    def get_route_handler(self) -> Callable:
        original_handler = super().get_route_handler()
        processors = tuple(self.processors)

        async def post_processing_handler(request: Request) -> Response:
            response = await original_handler(request)
            if not processors or not _is_json_response(response):
                return response

            payload = json.loads(response.body) if response.body else None
            for processor in processors:
                payload = processor(request, payload)

            processed = JSONResponse(content=payload, status_code=response.status_code)
            processed.raw_headers.extend(
                (key, value)
                for key, value in response.raw_headers
                if key.lower() not in _REPLACED_HEADERS
            )
            if response.background is not None:
                processed.background = response.background
            return processed

        return post_processing_handler


def _is_json_response(response: Response) -> bool:
    if not hasattr(response, "body"):
        return False
    return "json" in (response.headers.get("content-type") or "")


def post_processing_route(*processors: Processor) -> type:
    """
    Build a route class with the given processors, applied in order.

    Example:
        router = APIRouter(route_class=post_processing_route(
            masking_processor(FieldProtector()),
            reshape_processor(ResponseReshapeEngine()),
        ))
    """
    return type("PostProcessingRoute", (PostProcessingRoute,), {"processors": tuple(processors)})


def masking_processor(protector: FieldProtector) -> Processor:
    """Mask sensitive fields in the payload."""

    def mask(request: Request, payload: Any) -> Any:
        return protector.mask_fields(payload)

    return mask


def reshape_processor(engine: ResponseReshapeEngine, source_version: str = V2) -> Processor:
    """
    Reshape payloads written in ``source_version`` into the version the
    client requested.
    """

    def reshape(request: Request, payload: Any) -> Any:
        target_version = request_api_version(request)
        if target_version != source_version:
            logger.debug(
                f"Reshaping {request.url.path} response {source_version}->{target_version}"
            )
        return engine.transform(payload, source_version, target_version)

    return reshape
