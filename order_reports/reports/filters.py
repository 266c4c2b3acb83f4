"""
Report Filter Validation

Normalizes raw request parameters (strings) into typed, bounded filter
models. Every family is a frozen pydantic model; values out of range are
rejected, never clamped, and absent optional filters stay ``None``.

Boundary parameter names: page, limit, topN, startDate, endDate, status,
categoriaId. Anything else is ignored.
"""

import re
from datetime import date
from typing import Annotated, Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from order_reports.database.models import OrderStatus
from order_reports.reports.exceptions import FilterValidationError

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_ISO_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

# Upper bound of the int4 id columns; also keeps (page - 1) * limit within int64
INT4_MAX = 2_147_483_647

F = TypeVar("F", bound=BaseModel)


def _integer(value: Any) -> Any:
    # Only whole-number strings are coerced; "1.5", "1e2" and "" are rejected.
    if isinstance(value, bool):
        raise ValueError("must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER_RE.fullmatch(value):
        return int(value)
    raise ValueError("must be an integer")


def _iso_date(value: Any) -> Any:
    if value is None or isinstance(value, date):
        return value
    if isinstance(value, str) and _ISO_DATE_RE.fullmatch(value):
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise ValueError("must be a valid calendar date") from None
    raise ValueError("must be a date formatted as YYYY-MM-DD")


IntParam = Annotated[int, BeforeValidator(_integer)]
DateParam = Annotated[date, BeforeValidator(_iso_date)]


class FilterModel(BaseModel):
    """Base for every filter family."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class Pagination(FilterModel):
    """page 1..INT4_MAX (default 1), limit 1..100 (default 10)"""

    page: IntParam = Field(default=1, ge=1, le=INT4_MAX)
    limit: IntParam = Field(default=10, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class TopNFilter(FilterModel):
    """topN 1..50 (default 10)"""

    top_n: IntParam = Field(default=10, ge=1, le=50, alias="topN")


class DateRangeFilter(FilterModel):
    """Two independently optional ISO calendar dates."""

    start_date: Optional[DateParam] = Field(default=None, alias="startDate")
    end_date: Optional[DateParam] = Field(default=None, alias="endDate")


class StatusFilter(FilterModel):
    status: Optional[OrderStatus] = None


class CategoryFilter(FilterModel):
    category_id: Optional[IntParam] = Field(default=None, gt=0, le=INT4_MAX, alias="categoriaId")


def normalize_query_params(raw: Mapping[str, Any]) -> Dict[str, str]:
    """
    Flatten boundary parameters to one string per name.

    Repeated parameters keep their first value; empty lists and ``None``
    count as absent.
    """
    params: Dict[str, str] = {}
    for key, value in raw.items():
        if isinstance(value, (list, tuple)):
            if value:
                params[key] = value[0]
        elif value is not None:
            params[key] = value
    return params


def _collect_errors(error: ValidationError) -> List[Dict[str, Any]]:
    collected = []
    for item in error.errors():
        param = ".".join(str(part) for part in item["loc"]) or "__root__"
        message = item["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        collected.append({"param": param, "message": message, "value": item.get("input")})
    return collected


def validate_filters(raw: Mapping[str, Any], *families: Type[F]) -> Tuple[F, ...]:
    """
    Validate ``raw`` against every requested filter family at once.

    Either every family validates and a tuple of models (in the order
    requested) is returned, or a single ``FilterValidationError`` listing
    every problem is raised.

    Example:
        top, page = validate_filters(request_params, TopNFilter, Pagination)
    """
    params = normalize_query_params(raw)
    results = []
    errors: List[Dict[str, Any]] = []
    for family in families:
        try:
            results.append(family.model_validate(params))
        except ValidationError as e:
            errors.extend(_collect_errors(e))

    if errors:
        raise FilterValidationError(errors)
    return tuple(results)
