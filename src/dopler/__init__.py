"""
DOPLER Decision Model Package

Loads DOPLER decision models (product-line variability questions) from
tabular text into a typed, read-only object graph.

Layers:
    - model / expressions: the object graph and condition ASTs
    - factory: construction of decisions and value objects
    - deserializer: two-pass CSV loading (structure, then references)
    - conditions / rules: text -> AST resolution against the model
    - statistics / serialization: read-only consumers of a loaded model
"""

from dopler.deserializer import CSV_FORMAT, DecisionModelDeserializer, Format
from dopler.exceptions import (
    DecisionModelError,
    DuplicateDecision,
    ExpressionSyntaxError,
    FrozenModelError,
    IOFailure,
    UnresolvedReference,
    UnsupportedFormat,
    UnsupportedRangeOrCardinality,
    UnsupportedType,
    UnsupportedVariabilityType,
)
from dopler.factory import DecisionFactory
from dopler.model import Cardinality, Decision, DecisionModel, DecisionType, EnumOptions, NumberRange, Rule
from dopler.statistics import DecisionModelStatistics

__version__ = "0.1.0"

__all__ = [
    "CSV_FORMAT",
    "Cardinality",
    "Decision",
    "DecisionFactory",
    "DecisionModel",
    "DecisionModelDeserializer",
    "DecisionModelError",
    "DecisionModelStatistics",
    "DecisionType",
    "DuplicateDecision",
    "EnumOptions",
    "ExpressionSyntaxError",
    "Format",
    "FrozenModelError",
    "IOFailure",
    "NumberRange",
    "Rule",
    "UnresolvedReference",
    "UnsupportedFormat",
    "UnsupportedRangeOrCardinality",
    "UnsupportedType",
    "UnsupportedVariabilityType",
]
