"""
Error taxonomy for decision model loading.

Every failure raised while building a DecisionModel derives from
DecisionModelError and carries enough context (decision id, field,
offending value, row number, phase) to locate the bad row without
re-parsing the input.

Hierarchy:
    DecisionModelError
        UnsupportedVariabilityType
            UnsupportedType
            UnsupportedRangeOrCardinality
            UnsupportedFormat
        UnresolvedReference
            DuplicateDecision
        ExpressionSyntaxError
        IOFailure
        FrozenModelError
"""

from typing import Any, Optional


class DecisionModelError(Exception):
    """Base class for all decision model errors."""

    _CONTEXT_FIELDS = ("decision_id", "field", "value", "row", "phase")

    def __init__(
        self,
        message: str,
        *,
        decision_id: Optional[str] = None,
        field: Optional[str] = None,
        value: Any = None,
        row: Optional[int] = None,
        phase: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.decision_id = decision_id
        self.field = field
        self.value = value
        self.row = row
        self.phase = phase

    def add_context(self, **context: Any) -> "DecisionModelError":
        """Fill in context attributes that are still unset. Returns self."""
        for key, val in context.items():
            if key not in self._CONTEXT_FIELDS:
                raise TypeError(f"Unknown error context field: {key}")
            if getattr(self, key) is None and val is not None:
                setattr(self, key, val)
        return self

    def __str__(self) -> str:
        parts = []
        for key in self._CONTEXT_FIELDS:
            val = getattr(self, key)
            if val is not None:
                parts.append(f"{key}={val!r}")
        if not parts:
            return self.message
        return f"{self.message} ({', '.join(parts)})"


class UnsupportedVariabilityType(DecisionModelError):
    """Raised when a type tag, range, cardinality or format is not supported."""
    pass


class UnsupportedType(UnsupportedVariabilityType):
    """Raised when a TYPE tag matches none of the known decision types."""
    pass


class UnsupportedRangeOrCardinality(UnsupportedVariabilityType):
    """Raised for malformed ranges/cardinalities or ones the decision type cannot carry."""
    pass


class UnsupportedFormat(UnsupportedVariabilityType):
    """Raised when the input is not in the supported tabular format."""
    pass


class UnresolvedReference(DecisionModelError):
    """Raised when a decision id (or option) cannot be found in the model."""
    pass


class DuplicateDecision(UnresolvedReference):
    """Raised when the same decision id is registered twice."""
    pass


class ExpressionSyntaxError(DecisionModelError):
    """Raised when rule or visibility text cannot be parsed."""
    pass


class IOFailure(DecisionModelError):
    """Raised when the underlying text source cannot be read."""
    pass


class FrozenModelError(DecisionModelError):
    """Raised when a frozen model or decision is mutated."""
    pass
