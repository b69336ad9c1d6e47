"""API routes for plot creation and search."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from land_search.logging_config import get_logger
from land_search.plots.filters import SearchFilter
from land_search.plots.models import PlotMetadata, PlotRecord
from land_search.search.service import LandSearchService

logger = get_logger(__name__)


# Create router
router = APIRouter(prefix="/api/v1/plots", tags=["Plots"])


def get_service(request: Request) -> LandSearchService:
    """Return the service built at startup."""
    service: LandSearchService | None = getattr(request.app.state, "service", None)
    if service is None:
        logger.warning("Land search service not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Land search service not configured",
                "message": "Searching requires the plot store and embedding service",
            },
        )
    return service


ServiceDep = Annotated[LandSearchService, Depends(get_service)]


class CreatePlotRequest(BaseModel):
    """Request body for plot creation."""

    metadata: PlotMetadata = Field(description="Plot metadata")
    id: str | None = Field(default=None, description="Explicit record id")


class FilterRequest(BaseModel):
    """Request body for a metadata-only search."""

    filters: SearchFilter = Field(default_factory=SearchFilter)
    limit: int | None = Field(default=None, ge=1, description="Maximum results")


class SearchRequest(BaseModel):
    """Request body for a hybrid search."""

    query: str = Field(min_length=1, description="Free-text description")
    filters: SearchFilter = Field(default_factory=SearchFilter)
    limit: int | None = Field(default=None, ge=1, le=100, description="Maximum results")
    similarity_threshold: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Minimum similarity score",
    )


class AskRequest(BaseModel):
    """Request body for a natural-language search."""

    question: str = Field(min_length=1, description="What the user is looking for")
    limit: int | None = Field(default=None, ge=1, le=100)


class PlotResponse(BaseModel):
    """A stored plot, without its embedding."""

    id: str
    text: str
    metadata: dict[str, Any]


class PlotListResponse(BaseModel):
    """A list of plots."""

    plots: list[PlotResponse]
    count: int


def plot_to_response(record: PlotRecord) -> PlotResponse:
    """Convert a PlotRecord to its API shape."""
    return PlotResponse(
        id=record.id,
        text=record.text,
        metadata=record.metadata.model_dump(mode="json"),
    )


def plots_to_response(records: list[PlotRecord]) -> PlotListResponse:
    """Convert records to a PlotListResponse."""
    return PlotListResponse(
        plots=[plot_to_response(r) for r in records],
        count=len(records),
    )


@router.post("", response_model=PlotResponse, status_code=status.HTTP_201_CREATED)
async def create_plot_endpoint(
    request: CreatePlotRequest, service: ServiceDep
) -> PlotResponse:
    """Describe, embed and store a new plot."""
    record = await service.create_plot(request.metadata, record_id=request.id)
    return plot_to_response(record)


@router.post("/filter", response_model=PlotListResponse)
async def filter_endpoint(request: FilterRequest, service: ServiceDep) -> PlotListResponse:
    """Return plots matching every populated filter field."""
    records = await service.filter_properties(request.filters, limit=request.limit)
    return plots_to_response(records)


@router.post("/search", response_model=PlotListResponse)
async def search_endpoint(request: SearchRequest, service: ServiceDep) -> PlotListResponse:
    """Hybrid similarity and metadata search."""
    records = await service.search_properties(
        request.query,
        filters=request.filters,
        limit=request.limit,
        similarity_threshold=request.similarity_threshold,
    )
    return plots_to_response(records)


@router.get("/rarity", response_model=PlotListResponse)
async def rarity_endpoint(
    service: ServiceDep,
    min_rank: Annotated[int | None, Query(ge=1)] = None,
    max_rank: Annotated[int | None, Query(ge=1)] = None,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> PlotListResponse:
    """Plots whose rank lies within ``[min_rank, max_rank]``."""
    records = await service.get_properties_by_rarity(min_rank, max_rank, limit=limit)
    return plots_to_response(records)


@router.post("/ask", response_model=PlotListResponse)
async def ask_endpoint(request: AskRequest, service: ServiceDep) -> PlotListResponse:
    """Natural-language search."""
    records = await service.ask(request.question, limit=request.limit)
    return plots_to_response(records)


# Must stay after the fixed paths above
@router.get("/{plot_id}", response_model=PlotResponse)
async def get_plot_endpoint(plot_id: str, service: ServiceDep) -> PlotResponse:
    """Fetch one plot by id."""
    record = await service.get_plot(plot_id)
    return plot_to_response(record)
