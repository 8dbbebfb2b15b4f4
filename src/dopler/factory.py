"""
Decision factory: the one place decisions and their value objects are built.

The factory is an ordinary object handed to the deserializer, so tests and
callers can use differently configured factories side by side.
"""

import logging
import math
import re
from typing import Callable, Dict, Mapping, Optional, Sequence

from dopler.exceptions import UnsupportedRangeOrCardinality, UnsupportedType
from dopler.model import (
    Cardinality,
    Decision,
    DecisionModel,
    DecisionType,
    EnumOptions,
    NumberRange,
)

logger = logging.getLogger(__name__)

# Plain ASCII decimals only: no digit separators, no inf/nan spellings.
_DECIMAL = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


# Type names used by DOPLER tooling in addition to the canonical tags.
DEFAULT_TYPE_ALIASES = {
    "enumeration": "ENUM",
    "double": "NUMBER",
}


class DecisionFactory:
    """
    Builds decisions, ranges and cardinalities.

    Args:
        type_aliases: extra tag -> canonical type name mapping
            (matched case-insensitively)
    """

    def __init__(self, type_aliases: Optional[Mapping[str, str]] = None):
        if type_aliases is None:
            type_aliases = DEFAULT_TYPE_ALIASES
        self._aliases: Dict[str, DecisionType] = {}
        for alias, canonical in type_aliases.items():
            try:
                self._aliases[alias.strip().upper()] = DecisionType[canonical.strip().upper()]
            except KeyError:
                raise ValueError(f"Type alias '{alias}' points to unknown type '{canonical}'")
        self._constructors: Dict[DecisionType, Callable[[str], Decision]] = {
            DecisionType.BOOLEAN: self.create_boolean_decision,
            DecisionType.ENUM: self.create_enum_decision,
            DecisionType.NUMBER: self.create_number_decision,
            DecisionType.STRING: self.create_string_decision,
        }

    def create_model(self, name: str = "", source: str = "inline") -> DecisionModel:
        return DecisionModel(name=name, source=source)

    def resolve_type(self, type_tag: str) -> DecisionType:
        """
        Resolve a TYPE cell to a DecisionType.

        Raises:
            UnsupportedType: if the tag is neither a canonical name nor an alias
        """
        for decision_type in DecisionType:
            if decision_type.matches(type_tag):
                return decision_type
        alias = self._aliases.get(type_tag.strip().upper())
        if alias is not None:
            logger.debug("Type tag %r resolved through alias to %s", type_tag, alias.value)
            return alias
        raise UnsupportedType(f"Unsupported decision type '{type_tag}'", field="type", value=type_tag)

    def create_decision(self, type_tag: str, decision_id: str) -> Decision:
        decision_type = self.resolve_type(type_tag)
        return self._constructors[decision_type](decision_id)

    def create_boolean_decision(self, decision_id: str) -> Decision:
        return Decision(id=decision_id, type=DecisionType.BOOLEAN)

    def create_enum_decision(self, decision_id: str) -> Decision:
        return Decision(id=decision_id, type=DecisionType.ENUM)

    def create_number_decision(self, decision_id: str) -> Decision:
        return Decision(id=decision_id, type=DecisionType.NUMBER)

    def create_string_decision(self, decision_id: str) -> Decision:
        return Decision(id=decision_id, type=DecisionType.STRING)

    def create_number_range(self, tokens: Sequence[str]) -> NumberRange:
        """
        Build a closed interval from one or two numeric tokens.

        A single token yields the degenerate interval [x, x].
        """
        if not 1 <= len(tokens) <= 2:
            raise UnsupportedRangeOrCardinality(
                f"Numeric range needs one or two bounds, got {len(tokens)}", field="range", value=list(tokens)
            )
        bounds = []
        for token in tokens:
            if not _DECIMAL.fullmatch(token):
                raise UnsupportedRangeOrCardinality(
                    f"'{token}' is not a number", field="range", value=token
                )
            bound = float(token)
            if not math.isfinite(bound):
                raise UnsupportedRangeOrCardinality(
                    f"Range bound '{token}' is not finite", field="range", value=token
                )
            bounds.append(bound)
        low, high = bounds[0], bounds[-1]
        return NumberRange(low=low, high=high)

    def create_enum_options(self, tokens: Sequence[str]) -> EnumOptions:
        """Build an ordered option set; duplicates are rejected by EnumOptions."""
        return EnumOptions(options=tuple(tokens))

    def create_cardinality(self, minimum: int, maximum: int) -> Cardinality:
        return Cardinality(min=minimum, max=maximum)
