"""Form validation and sanitization.

A form is checked against an ordered list of ``FieldRule`` descriptors. Each
rule trims its field, the checks (minimum length, ISO-8601 date) run through a
pydantic model built from the rules, and escaping is applied to what passed
through. The sanitized values are returned alongside the errors so a form can
be re-rendered with what the user sent.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from functools import lru_cache
from typing import Annotated, Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from pydantic import BaseModel, BeforeValidator, Field, StringConstraints, TypeAdapter, ValidationError, create_model

# HTML entities substituted by escape()
_ESCAPES = {
    "&": "&amp;",
    '"': "&quot;",
    "'": "&#x27;",
    "<": "&lt;",
    ">": "&gt;",
    "/": "&#x2F;",
    "\\": "&#x5C;",
    "`": "&#96;",
}

# Calendar date first; pydantic also reads bare digits as unix timestamps
_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")

_date_adapter = TypeAdapter(date)
_datetime_adapter = TypeAdapter(datetime)


def escape(value: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in value)


def parse_iso8601(value: str) -> Optional[date]:
    """Return the date part of an ISO-8601 date/datetime string, or None."""
    text = value.strip()
    if not _ISO_DATE_PREFIX.match(text):
        return None
    try:
        return _date_adapter.validate_python(text)
    except ValidationError:
        pass
    try:
        return _datetime_adapter.validate_python(text).date()
    except ValidationError:
        return None


def _iso_date(value: Any) -> Any:
    if isinstance(value, str):
        parsed = parse_iso8601(value)
        if parsed is None:
            raise ValueError("not an ISO-8601 date")
        return parsed
    return value


IsoDate = Annotated[date, BeforeValidator(_iso_date)]


@dataclass(frozen=True)
class FieldRule:
    field: str
    message: str = "Invalid value"
    trim: bool = False
    min_length: Optional[int] = None
    escape: bool = False
    # Skip every check when the submitted value is falsy
    optional: bool = False
    iso8601: bool = False

    def annotation(self) -> Any:
        if self.iso8601:
            return Optional[IsoDate] if self.optional else IsoDate
        if self.min_length is not None:
            return Annotated[str, StringConstraints(min_length=self.min_length)]
        return Optional[str] if self.optional else str


class FieldError(BaseModel):
    field: str
    msg: str
    value: Any = None
    location: str = "body"


class ValidationResult(BaseModel):
    values: Dict[str, Any] = Field(default_factory=dict)
    errors: List[FieldError] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.errors

    def array(self) -> List[FieldError]:
        return list(self.errors)

    def messages(self) -> List[str]:
        return [error.msg for error in self.errors]


@lru_cache(maxsize=None)
def form_model(rules: Tuple[FieldRule, ...]) -> Type[BaseModel]:
    """Pydantic model checking one form described by ``rules``."""
    fields = {rule.field: (rule.annotation(), ...) for rule in rules}
    return create_model("FormModel", **fields)


def _prepare(rule: FieldRule, raw: Any) -> Optional[str]:
    value = "" if raw is None else str(raw)
    if rule.optional and not value:
        return None
    return value.strip() if rule.trim else value


def validate(form: Mapping[str, Any], rules: Sequence[FieldRule]) -> ValidationResult:
    rules = tuple(rules)
    prepared = {rule.field: _prepare(rule, form.get(rule.field)) for rule in rules}

    failed: Dict[str, Any] = {}
    checked: Dict[str, Any] = {}
    try:
        checked = form_model(rules).model_validate(prepared).model_dump()
    except ValidationError as exc:
        for error in exc.errors():
            failed.setdefault(error["loc"][0], error)

    result = ValidationResult()
    for rule in rules:
        value = prepared[rule.field]
        if rule.field in failed:
            result.errors.append(FieldError(field=rule.field, msg=rule.message, value=value))
        if rule.iso8601:
            if rule.field in failed or value is None:
                result.values[rule.field] = None
            else:
                result.values[rule.field] = checked[rule.field] if rule.field in checked else parse_iso8601(value)
        elif rule.escape and value is not None:
            result.values[rule.field] = escape(value)
        else:
            result.values[rule.field] = value
    return result


BOOKINSTANCE_RULES = (
    FieldRule("book", "Book must be specified", trim=True, min_length=1, escape=True),
    FieldRule("imprint", "Imprint must be specified", trim=True, min_length=1, escape=True),
    FieldRule("status", escape=True),
    FieldRule("due_back", "Invalid date", optional=True, iso8601=True),
)
