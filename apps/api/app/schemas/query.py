"""Query descriptor and paginated result schemas."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class PopulationRequest(BaseModel):
    path: str = Field(min_length=1)
    match: dict[str, Any] | None = None
    select: dict[str, Literal[0, 1] | bool] | None = None


class QueryDescriptor(BaseModel):
    """Declarative list request: filter, projection, sort, pagination, population.

    ``limit == 0`` disables pagination.
    """

    model_config = ConfigDict(extra="forbid")

    filter: dict[str, Any] = Field(default_factory=dict)
    projection: dict[str, Literal[0, 1] | bool] | None = None
    sort: dict[str, Literal[1, -1]] = Field(default_factory=dict)
    limit: int = Field(default=0, ge=0)
    skip: int = Field(default=0, ge=0)
    page: int = Field(default=1, ge=1)
    population: list[str | PopulationRequest] = Field(default_factory=list)


class PaginatedResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    count: int
    page: int
    total_pages: int = Field(alias="totalPages")
    data: list[dict[str, Any]]
