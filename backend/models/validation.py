from typing import Any, Optional

from pydantic import BaseModel


class ValidationIssue(BaseModel):
    location: str       # "params" | "query" | "body"
    param: str
    msg: str
    value: Optional[Any] = None
