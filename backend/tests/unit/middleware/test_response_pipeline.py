"""
Response post-processing route tests.
"""

import pytest
from fastapi import APIRouter, FastAPI, Response
from fastapi.responses import PlainTextResponse
from httpx import ASGITransport, AsyncClient

from lexshield.middleware.response_pipeline import (
    masking_processor,
    post_processing_route,
    reshape_processor,
)
from lexshield.security.field_protection import FieldProtector
from lexshield.security.reshape import ResponseReshapeEngine


def build_app() -> FastAPI:
    router = APIRouter(
        route_class=post_processing_route(
            masking_processor(FieldProtector()),
            reshape_processor(ResponseReshapeEngine(
                field_aliases={"nationalId": "national_id", "createdAt": "created_at"}
            )),
        )
    )

    @router.get("/client")
    async def client(response: Response):
        response.headers["X-Custom"] = "kept"
        return {"name": "Sara", "nationalId": "1098765432", "createdAt": "2026-01-01T00:00:00.000Z"}

    @router.get("/text", response_class=PlainTextResponse)
    async def text():
        return "nationalId=1098765432"

    app = FastAPI()
    for version in ("v1", "v2"):
        app.include_router(router, prefix=f"/api/{version}")
    return app


async def get(path):
    async with AsyncClient(transport=ASGITransport(app=build_app()), base_url="http://test") as ac:
        return await ac.get(path)


class TestPostProcessingRoute:
    @pytest.mark.asyncio
    async def test_v2_masked(self):
        response = await get("/api/v2/client")

        assert response.json() == {
            "name": "Sara",
            "nationalId": "******5432",
            "createdAt": "2026-01-01T00:00:00.000Z",
        }

    @pytest.mark.asyncio
    async def test_v1_masked_then_reshaped(self):
        response = await get("/api/v1/client")

        assert response.json() == {
            "name": "Sara",
            "national_id": "******5432",
            "created_at": 1767225600000,
        }

    @pytest.mark.asyncio
    async def test_headers_preserved(self):
        response = await get("/api/v2/client")

        assert response.headers["x-custom"] == "kept"
        assert response.headers["content-type"] == "application/json"
        assert int(response.headers["content-length"]) == len(response.content)

    @pytest.mark.asyncio
    async def test_non_json_untouched(self):
        response = await get("/api/v2/text")
        assert response.text == "nationalId=1098765432"
