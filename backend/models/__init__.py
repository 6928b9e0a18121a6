from models.session import Session
from models.validation import ValidationIssue

__all__ = ["Session", "ValidationIssue"]
