"""Tests for plot API routes."""

from typing import Any
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from land_search.api.app import _get_status_code, app
from land_search.api.routes import SearchRequest, plot_to_response
from land_search.exceptions import ErrorCode, LLMError
from land_search.llm.models import InterpretedQuery
from land_search.plots.filters import SearchFilter
from land_search.plots.models import PlotRecord
from land_search.search.service import LandSearchService

PLOT = {
    "rank": 300,
    "name": "Bayfront",
    "neighborhood": "North Shore",
    "zoning": "Residential",
    "plot_size": "Large",
    "building_type": "HighRise",
    "distances": {"ocean": {"meters": 150}, "bay": {"meters": 650}},
    "building": {"floors": {"min": 20, "max": 40}, "height": {"min": 80, "max": 160}},
    "plot_area": 8000,
}


def _plot(**overrides: Any) -> dict[str, Any]:
    return {**PLOT, **overrides}


class TestModels:
    """Tests for request and response models."""

    def test_search_request_defaults(self) -> None:
        """Search request has an empty filter by default."""
        req = SearchRequest(query="ocean view")
        assert req.filters == SearchFilter()
        assert req.limit is None

    def test_plot_response_omits_embedding(self, metadata_factory: Any) -> None:
        """Responses carry metadata with derived categories but no vector."""
        record = PlotRecord.create(metadata_factory(rank=42), [0.1, 0.2], id="p1")
        response = plot_to_response(record)

        assert response.id == "p1"
        assert response.metadata["rarity_category"] == "Ultra Premium"
        assert "embedding" not in response.model_dump()


class TestStatusCodes:
    """Tests for error code to HTTP status mapping."""

    @pytest.mark.parametrize(
        ("code", "status"),
        [
            (ErrorCode.VALIDATION_ERROR, 400),
            (ErrorCode.PLOT_NOT_FOUND, 404),
            (ErrorCode.DUPLICATE_RECORD, 409),
            (ErrorCode.LLM_RATE_LIMIT, 429),
            (ErrorCode.EMBEDDING_SERVICE_ERROR, 502),
            (ErrorCode.CONFIGURATION_ERROR, 503),
            (ErrorCode.LLM_TIMEOUT, 504),
            (ErrorCode.QUERY_ERROR, 500),
        ],
    )
    def test_mapping(self, code: ErrorCode, status: int) -> None:
        """Each error code maps to its HTTP status."""
        assert _get_status_code(code) == status


class TestPlotEndpoints:
    """Tests for /api/v1/plots endpoints."""

    async def test_create_and_get(self, client: AsyncClient) -> None:
        """A created plot can be fetched by id."""
        created = await client.post("/api/v1/plots", json={"metadata": PLOT})

        assert created.status_code == 201
        plot_id = created.json()["id"]

        fetched = await client.get(f"/api/v1/plots/{plot_id}")

        assert fetched.status_code == 200
        data = fetched.json()
        assert data["metadata"]["neighborhood"] == "North Shore"
        assert data["metadata"]["distances"]["ocean"]["category"] == "Close"
        assert data["text"].startswith("Bayfront is a Large Residential plot")

    async def test_create_rejects_inconsistent_category(self, client: AsyncClient) -> None:
        """A derived category that disagrees with meters is rejected."""
        bad = _plot(distances={"ocean": {"meters": 900, "category": "Close"}, "bay": {"meters": 1}})

        response = await client.post("/api/v1/plots", json={"metadata": bad})

        assert response.status_code == 422

    async def test_duplicate_id_conflict(self, client: AsyncClient) -> None:
        """Creating an existing id returns 409."""
        await client.post("/api/v1/plots", json={"metadata": PLOT, "id": "dup"})
        response = await client.post("/api/v1/plots", json={"metadata": PLOT, "id": "dup"})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == ErrorCode.DUPLICATE_RECORD.value

    async def test_get_missing(self, client: AsyncClient) -> None:
        """An unknown id returns 404 with a structured error."""
        response = await client.get("/api/v1/plots/missing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == ErrorCode.PLOT_NOT_FOUND.value

    async def test_filter(self, client: AsyncClient) -> None:
        """Filtering returns only matching plots."""
        await client.post("/api/v1/plots", json={"metadata": PLOT})
        await client.post("/api/v1/plots", json={"metadata": _plot(plot_size="Small")})

        response = await client.post(
            "/api/v1/plots/filter",
            json={"filters": {"neighborhoods": ["North Shore"], "plot_sizes": ["Large"]}},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["plots"][0]["metadata"]["plot_size"] == "Large"

    async def test_filter_inverted_bounds(self, client: AsyncClient) -> None:
        """Inconsistent bounds are rejected before searching."""
        response = await client.post(
            "/api/v1/plots/filter",
            json={"filters": {"building": {"floors": {"min": 9, "max": 2}}}},
        )

        assert response.status_code == 422

    async def test_search(self, client: AsyncClient) -> None:
        """Hybrid search combines similarity and filters."""
        await client.post("/api/v1/plots", json={"metadata": PLOT})
        await client.post("/api/v1/plots", json={"metadata": _plot(neighborhood="South Bay")})

        response = await client.post(
            "/api/v1/plots/search",
            json={"query": "tall building by the ocean", "filters": {"neighborhoods": ["South Bay"]}},
        )

        assert response.status_code == 200
        assert [p["metadata"]["neighborhood"] for p in response.json()["plots"]] == ["South Bay"]

    async def test_search_requires_query(self, client: AsyncClient) -> None:
        """An empty query is a validation error."""
        response = await client.post("/api/v1/plots/search", json={"query": ""})

        assert response.status_code == 422

    async def test_rarity(self, client: AsyncClient) -> None:
        """Rarity endpoint returns plots inside the rank window."""
        for rank in (50, 300, 600):
            await client.post("/api/v1/plots", json={"metadata": _plot(rank=rank)})

        response = await client.get("/api/v1/plots/rarity", params={"min_rank": 100, "max_rank": 500})

        assert response.status_code == 200
        assert [p["metadata"]["rank"] for p in response.json()["plots"]] == [300]

    async def test_rarity_inverted_window(self, client: AsyncClient) -> None:
        """min_rank above max_rank returns 400."""
        response = await client.get("/api/v1/plots/rarity", params={"min_rank": 500, "max_rank": 100})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.VALIDATION_ERROR.value

    async def test_ask_without_interpreter(self, client: AsyncClient) -> None:
        """ask returns 503 when no interpreter is configured."""
        response = await client.post("/api/v1/plots/ask", json={"question": "anything"})

        assert response.status_code == 503

    async def test_ask(self, client: AsyncClient, service: LandSearchService) -> None:
        """ask searches with the interpreted query."""
        interpreter = AsyncMock()
        interpreter.interpret.return_value = InterpretedQuery(
            search_text="plot in North Shore",
            filters=SearchFilter(neighborhoods=["North Shore"]),
        )
        service._interpreter = interpreter
        await service.create_plot(PLOT)
        await service.create_plot(_plot(neighborhood="South Bay"))

        response = await client.post("/api/v1/plots/ask", json={"question": "north?"})

        assert response.status_code == 200
        assert response.json()["count"] == 1

    async def test_ask_llm_failure(
        self, client: AsyncClient, service: LandSearchService
    ) -> None:
        """LLM failures surface as 502."""
        interpreter = AsyncMock()
        interpreter.interpret.side_effect = LLMError(
            "bad reply", code=ErrorCode.LLM_INVALID_REPLY
        )
        service._interpreter = interpreter

        response = await client.post("/api/v1/plots/ask", json={"question": "?"})

        assert response.status_code == 502


class TestUnconfigured:
    """Tests for requests made before the service is built."""

    async def test_returns_503_without_service(self) -> None:
        """Plot routes return 503 when the service is not configured."""
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/api/v1/plots/filter", json={})

        assert response.status_code == 503
        assert "not configured" in response.json()["detail"]["error"]
