"""Saved spec payload models.

Payloads are validated when they are loaded. Unknown query keys are
rejected instead of being carried along.
"""

from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictInt, ValidationError
from pydantic_core import PydanticCustomError


class SavedQueryPayload(BaseModel):
    """Body of a saved query file. `{}` is a valid payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    filter: Any = None
    projection: Any = None
    sort: Any = None
    limit: Annotated[StrictInt, Field(ge=0)] | None = None

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def _check_stage(stage: dict[str, Any]) -> dict[str, Any]:
    if len(stage) != 1:
        raise PydanticCustomError(
            "pipeline_stage",
            "a stage must have exactly one key, found {count}",
            {"count": len(stage)},
        )
    (name,) = stage
    if not name.startswith("$"):
        raise PydanticCustomError(
            "pipeline_stage",
            "stage key '{name}' must start with '$'",
            {"name": name},
        )
    return stage


PipelineStage = Annotated[dict[str, Any], AfterValidator(_check_stage)]


class SavedAggregationPayload(BaseModel):
    """Body of a saved aggregation file: an ordered list of stages."""

    model_config = ConfigDict(frozen=True)

    stages: tuple[PipelineStage, ...]

    @property
    def stage_names(self) -> list[str]:
        return [next(iter(stage)) for stage in self.stages]

    def to_json(self) -> list[dict[str, Any]]:
        return [dict(stage) for stage in self.stages]


def describe_validation_error(error: ValidationError, prefix: str = "field") -> str:
    """Summarize the first pydantic error for a payload."""
    first = error.errors()[0]
    loc = first["loc"]
    if first["type"] == "extra_forbidden":
        return f"unknown field '{loc[-1]}'"
    if loc and loc[0] == "stages" and len(loc) > 1:
        return f"stage {loc[1]}: {first['msg']}"
    name = ".".join(str(part) for part in loc)
    if name == "limit":
        return "field 'limit' must be a non-negative integer"
    return f"{prefix} '{name}': {first['msg']}"


def parse_query_payload(data: Any) -> SavedQueryPayload:
    """Validate decoded JSON as a saved query payload.

    Raises:
        ValueError: With a short description of the first problem.
    """
    if not isinstance(data, dict):
        raise ValueError("saved query payload must be a JSON object")
    try:
        return SavedQueryPayload.model_validate(data)
    except ValidationError as e:
        raise ValueError(describe_validation_error(e)) from e


def parse_aggregation_payload(data: Any) -> SavedAggregationPayload:
    """Validate decoded JSON as a saved aggregation pipeline.

    Raises:
        ValueError: With a short description of the first problem.
    """
    if not isinstance(data, list):
        raise ValueError("saved aggregation payload must be a JSON array")
    try:
        return SavedAggregationPayload(stages=data)
    except ValidationError as e:
        raise ValueError(describe_validation_error(e)) from e
