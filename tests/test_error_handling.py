"""
Tests for the exception hierarchy and the global exception handlers
"""

import pytest
from fastapi import FastAPI, HTTPException
from httpx import AsyncClient, ASGITransport

from app.utils import error_handling
from app.utils.error_handling import (
    BusinessRuleException,
    ErrorCode,
    ExternalServiceException,
    NotFoundException,
    setup_exception_handlers,
)


def build_app() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/missing")
    async def missing():
        raise NotFoundException("Booking", "b-1", code=ErrorCode.BOOKING_NOT_FOUND)

    @app.get("/rule")
    async def rule():
        raise BusinessRuleException("Booking already decided", rule="single_decision")

    @app.get("/upstream")
    async def upstream():
        raise ExternalServiceException("Twilio", "Invalid 'To' number")

    @app.get("/forbidden")
    async def forbidden():
        raise HTTPException(status_code=403, detail="Not allowed")

    return app


@pytest.fixture
def handler_client():
    return AsyncClient(transport=ASGITransport(app=build_app()), base_url="http://test")


class TestExports:

    def test_every_exported_name_is_defined(self):
        missing = [name for name in error_handling.__all__ if not hasattr(error_handling, name)]
        assert missing == []


class TestHandlers:

    @pytest.mark.asyncio
    async def test_not_found_envelope(self, handler_client):
        async with handler_client as ac:
            response = await ac.get("/missing")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "BOOKING_NOT_FOUND"
        assert body["error"]["details"] == {"resource_type": "Booking", "resource_id": "b-1"}

    @pytest.mark.asyncio
    async def test_business_rule_carries_rule(self, handler_client):
        async with handler_client as ac:
            response = await ac.get("/rule")

        assert response.status_code == 422
        assert response.json()["error"]["details"] == {"rule": "single_decision"}

    @pytest.mark.asyncio
    async def test_external_service_is_502(self, handler_client):
        async with handler_client as ac:
            response = await ac.get("/upstream")

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["message"] == "Invalid 'To' number"
        assert error["details"]["service"] == "Twilio"

    @pytest.mark.asyncio
    async def test_http_exception_keeps_detail(self, handler_client):
        async with handler_client as ac:
            response = await ac.get("/forbidden")

        assert response.status_code == 403
        body = response.json()
        assert body["detail"] == "Not allowed"
        assert body["error"]["code"] == "FORBIDDEN"
