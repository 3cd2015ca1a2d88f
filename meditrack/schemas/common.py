from typing import Annotated, Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, StringConstraints
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")

OptText = (
    Annotated[
        str,
        StringConstraints(strip_whitespace=True, max_length=2000),
    ]
    | None
)


class CamelModel(BaseModel):
    """
    Base for API payloads.

    JSON uses camelCase keys (isLocked, minStockThreshold, ...); Python code
    and ORM attributes stay snake_case. Both spellings are accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(CamelModel, Generic[DataT]):
    """
    Envelope for every response: `{success, data?, message?, error?}`.
    """

    success: bool = True
    data: DataT | None = None
    message: str | None = None
    error: str | None = None


def failure_body(message: str, error: str | None = None, data: Any = None) -> dict[str, Any]:
    """Plain-dict failure envelope used by the exception handlers."""
    body: dict[str, Any] = {"success": False, "message": message}
    if error:
        body["error"] = error
    if data is not None:
        body["data"] = data
    return body
