"""
Request field validation and sanitization helpers.

request.state.validator is a fresh Validator per request:

  v = request.state.validator
  v.check_body("email", "A valid email is required").not_empty().is_email()
  v.sanitize_body("name").trim().escape()
  if v.errors():
      ...

check()/sanitize() without a location look in path params, then the query
string, then the body.
"""

import html
import re
from typing import Any, Iterable, Optional

from starlette.requests import Request

from models.validation import ValidationIssue
from pipeline.base import Forward, Outcome, Stage

LOCATIONS = ("params", "query", "body")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
INT_RE = re.compile(r"^[-+]?\d+$")
_MISSING = object()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class FieldCheck:
    def __init__(self, validator: "Validator", location: str, param: str, msg: str):
        self.validator = validator
        self.location = location
        self.param = param
        self.msg = msg
        self._optional = False

    @property
    def value(self) -> Any:
        return self.validator.value(self.param, self.location)

    def _check(self, ok: bool, msg: Optional[str]) -> "FieldCheck":
        if self._optional and _is_blank(self.value):
            return self
        if not ok:
            self.validator.add_issue(self.location, self.param, msg or self.msg, self.value)
        return self

    def optional(self) -> "FieldCheck":
        """Skip the remaining checks when the field is absent or blank."""
        self._optional = True
        return self

    def not_empty(self, msg: Optional[str] = None) -> "FieldCheck":
        return self._check(not _is_blank(self.value), msg)

    def is_email(self, msg: Optional[str] = None) -> "FieldCheck":
        value = self.value
        return self._check(isinstance(value, str) and bool(EMAIL_RE.match(value)), msg)

    def is_int(self, min: Optional[int] = None, max: Optional[int] = None, msg: Optional[str] = None) -> "FieldCheck":
        value = self.value
        ok = isinstance(value, int) and not isinstance(value, bool)
        if not ok and isinstance(value, str) and INT_RE.match(value.strip()):
            value, ok = int(value), True
        if ok:
            ok = (min is None or value >= min) and (max is None or value <= max)
        return self._check(ok, msg)

    def is_length(self, min: int = 0, max: Optional[int] = None, msg: Optional[str] = None) -> "FieldCheck":
        value = self.value
        ok = isinstance(value, str) and len(value) >= min and (max is None or len(value) <= max)
        return self._check(ok, msg)

    def matches(self, pattern: str, flags: int = 0, msg: Optional[str] = None) -> "FieldCheck":
        value = self.value
        return self._check(isinstance(value, str) and re.search(pattern, value, flags) is not None, msg)

    def is_in(self, values: Iterable[Any], msg: Optional[str] = None) -> "FieldCheck":
        return self._check(self.value in list(values), msg)


class Sanitizer:
    def __init__(self, validator: "Validator", location: str, param: str):
        self.validator = validator
        self.location = location
        self.param = param

    def _apply(self, fn) -> "Sanitizer":
        value = self.validator.value(self.param, self.location)
        if value is not None:
            self.validator.store(self.location, self.param, fn(value))
        return self

    def trim(self, chars: Optional[str] = None) -> "Sanitizer":
        return self._apply(lambda v: v.strip(chars) if isinstance(v, str) else v)

    def escape(self) -> "Sanitizer":
        return self._apply(lambda v: html.escape(v) if isinstance(v, str) else v)

    def to_int(self) -> "Sanitizer":
        def convert(v):
            try:
                return int(str(v).strip())
            except ValueError:
                return None
        return self._apply(convert)

    def to_boolean(self, strict: bool = False) -> "Sanitizer":
        def convert(v):
            text = str(v).strip().lower()
            if strict:
                return text in ("1", "true")
            return text not in ("", "0", "false")
        return self._apply(convert)


class Validator:
    def __init__(self, request: Request):
        self.request = request
        self._issues: list[ValidationIssue] = []
        self._sanitized: dict[tuple[str, str], Any] = {}

    # ---------- lookups ----------

    def _raw(self, location: str, param: str) -> Any:
        if location == "params":
            return self.request.path_params.get(param, _MISSING)
        if location == "query":
            values = self.request.query_params.getlist(param)
            if not values:
                return _MISSING
            return values[0] if len(values) == 1 else values
        body = getattr(self.request.state, "body", None)
        if isinstance(body, dict):
            return body.get(param, _MISSING)
        return _MISSING

    def locate(self, param: str) -> str:
        for location in LOCATIONS:
            if (location, param) in self._sanitized or self._raw(location, param) is not _MISSING:
                return location
        return "body"

    def value(self, param: str, location: Optional[str] = None) -> Any:
        location = location or self.locate(param)
        if (location, param) in self._sanitized:
            return self._sanitized[(location, param)]
        raw = self._raw(location, param)
        return None if raw is _MISSING else raw

    def store(self, location: str, param: str, value: Any) -> None:
        self._sanitized[(location, param)] = value
        body = getattr(self.request.state, "body", None)
        if location == "body" and isinstance(body, dict):
            body[param] = value

    # ---------- checks ----------

    def check(self, param: str, msg: str = "Invalid value") -> FieldCheck:
        return FieldCheck(self, self.locate(param), param, msg)

    def check_body(self, param: str, msg: str = "Invalid value") -> FieldCheck:
        return FieldCheck(self, "body", param, msg)

    def check_query(self, param: str, msg: str = "Invalid value") -> FieldCheck:
        return FieldCheck(self, "query", param, msg)

    def check_params(self, param: str, msg: str = "Invalid value") -> FieldCheck:
        return FieldCheck(self, "params", param, msg)

    def sanitize(self, param: str) -> Sanitizer:
        return Sanitizer(self, self.locate(param), param)

    def sanitize_body(self, param: str) -> Sanitizer:
        return Sanitizer(self, "body", param)

    def sanitize_query(self, param: str) -> Sanitizer:
        return Sanitizer(self, "query", param)

    # ---------- results ----------

    def add_issue(self, location: str, param: str, msg: str, value: Any) -> None:
        self._issues.append(ValidationIssue(location=location, param=param, msg=msg, value=value))

    def errors(self) -> list[ValidationIssue]:
        return list(self._issues)

    def mapped_errors(self) -> dict[str, ValidationIssue]:
        """First issue per field."""
        mapped: dict[str, ValidationIssue] = {}
        for issue in self._issues:
            mapped.setdefault(issue.param, issue)
        return mapped


class ValidationStage(Stage):
    name = "validation"

    async def handle(self, request: Request) -> Outcome:
        request.state.validator = Validator(request)
        return Forward()
