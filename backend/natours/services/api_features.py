"""
Query shaping for list endpoints.

``QueryShaper`` turns raw query-string parameters into a lazy SQLAlchemy
``Query`` in four chained steps::

    features = await (
        QueryShaper(visible_tours(db), request.query_params)
        .filter()
        .sort()
        .limit_fields()
        .paginate()
    )
    rows = features.query.all()

Supported parameters:

    ?difficulty=easy&duration[gte]=5     equality and range filters
    ?sort=price,-ratings_average         comma-separated, "-" for descending
    ?fields=name,price                   projection allow-list
    ?page=2&limit=10                     1-based page, default limit 100

No step executes the query. The only round trip before the caller runs it is
the count ``paginate()`` makes when a page was requested explicitly.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
import logging
import operator
import re

from sqlalchemy import JSON
from sqlalchemy.orm import Query
from starlette.concurrency import run_in_threadpool

from natours.core.errors import AppError, ErrorKind

logger = logging.getLogger(__name__)

ParamValue = Union[str, Sequence[str]]

RESERVED_PARAMS = ("page", "sort", "limit", "fields")
HIDDEN_FIELDS = ("version",)
DEFAULT_SORT = "-created_at"
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 100

_OPERATOR_KEY = re.compile(r"^(?P<field>\w+)\[(?P<op>gte|gt|lte|lt)\]$")

_OPERATORS = {
    "gte": operator.ge,
    "gt": operator.gt,
    "lte": operator.le,
    "lt": operator.lt,
}


def _as_list(value: ParamValue) -> List[str]:
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _last(value: Optional[ParamValue]) -> Optional[str]:
    if value is None:
        return None
    values = _as_list(value)
    return values[-1] if values else None


def _split_csv(value: ParamValue) -> List[str]:
    return [part.strip() for part in ",".join(_as_list(value)).split(",") if part.strip()]


def _positive_int(value: Optional[ParamValue], default: int) -> int:
    raw = _last(value)
    try:
        number = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _coerce(column, raw: str) -> Any:
    """Casts a query-string value to the Python type of ``column``."""
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return raw

    if python_type is bool:
        lowered = raw.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no"):
            return False
        raise ValueError(raw)
    if python_type is datetime:
        return datetime.fromisoformat(raw)
    if python_type is date:
        return date.fromisoformat(raw)
    if python_type is int:
        try:
            return int(raw)
        except ValueError:
            return float(raw)
    return python_type(raw)


class QueryShaper:
    """Applies filter, sort, projection and pagination to a lazy ORM query."""

    def __init__(self, query: Query, params: Mapping[str, ParamValue], model=None):
        self.query = query
        # working copy, the caller's mapping is never touched
        self.params: Dict[str, ParamValue] = dict(params)
        self.model = model if model is not None else query.column_descriptions[0]["entity"]
        self._columns = dict(self.model.__mapper__.columns.items())

        self.projection: List[str] = []
        self.explicit_projection = False
        self.page = DEFAULT_PAGE
        self.limit = DEFAULT_LIMIT

    def _attribute(self, name: str):
        if name not in self._columns:
            return None
        return getattr(self.model, name)

    def filter(self) -> "QueryShaper":
        query_obj = {k: v for k, v in self.params.items() if k not in RESERVED_PARAMS}

        for key, raw in query_obj.items():
            match = _OPERATOR_KEY.match(key)
            field, op = (match.group("field"), match.group("op")) if match else (key, None)

            column = self._columns.get(field)
            if column is None or isinstance(column.type, JSON):
                logger.debug(f"Ignoring filter on unknown field '{field}'")
                continue

            attribute = getattr(self.model, field)
            values = [self._cast(field, column, value) for value in _as_list(raw)]
            if not values:
                continue

            if op is not None:
                self.query = self.query.filter(_OPERATORS[op](attribute, values[-1]))
            elif len(values) == 1:
                self.query = self.query.filter(attribute == values[0])
            else:
                self.query = self.query.filter(attribute.in_(values))

        return self

    @staticmethod
    def _cast(field: str, column, raw: str) -> Any:
        try:
            return _coerce(column, raw)
        except (TypeError, ValueError):
            raise AppError(ErrorKind.VALIDATION, f"Invalid {field}: {raw}.")

    def sort(self) -> "QueryShaper":
        sort_by = self.params.get("sort")
        tokens = _split_csv(sort_by) if sort_by else []

        order = self._order_clauses(tokens)
        if not order:
            order = self._order_clauses([DEFAULT_SORT])

        # primary key last, so equal sort keys still page deterministically
        primary_key = self.model.__mapper__.primary_key[0].key
        order.append(getattr(self.model, primary_key).asc())

        self.query = self.query.order_by(*order)
        return self

    def _order_clauses(self, tokens: List[str]) -> list:
        clauses = []
        for token in tokens:
            descending = token.startswith("-")
            attribute = self._attribute(token[1:] if descending else token)
            if attribute is None:
                continue
            clauses.append(attribute.desc() if descending else attribute.asc())
        return clauses

    def limit_fields(self) -> "QueryShaper":
        fields = self.params.get("fields")
        if fields:
            self.explicit_projection = True
            requested = [name for name in _split_csv(fields) if name in self._columns]
            self.projection = ["id"] + [name for name in dict.fromkeys(requested) if name != "id"]
        else:
            self.projection = [name for name in self._columns if name not in HIDDEN_FIELDS]

        self.query = self.query.with_entities(*(getattr(self.model, name) for name in self.projection))
        return self

    async def paginate(self) -> "QueryShaper":
        self.page = _positive_int(self.params.get("page"), DEFAULT_PAGE)
        self.limit = _positive_int(self.params.get("limit"), DEFAULT_LIMIT)
        skip = (self.page - 1) * self.limit

        if self.params.get("page"):
            num_docs = await run_in_threadpool(self.query.order_by(None).count)
            if skip >= num_docs:
                raise AppError(ErrorKind.OUT_OF_RANGE, "This page does not exist")

        self.query = self.query.offset(skip).limit(self.limit)
        return self
