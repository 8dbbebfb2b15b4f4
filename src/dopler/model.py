"""
Core Decision Model Objects

Defines the data structures of a DOPLER decision model:
    - Decisions (variability questions), one tagged variant per DecisionType
    - Ranges (numeric interval or enumerated options)
    - Cardinalities (how many enum options may be selected together)
    - Rules and their actions
    - DecisionModel (ordered, id-keyed root container)

ARCHITECTURAL RULE:
    Decision kinds are a discriminated variant (Decision.type), not a
    subclass hierarchy. Everything kind-specific is looked up in
    TYPE_CAPABILITIES, which covers every DecisionType.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Set, Tuple, Union

from dopler.exceptions import (
    DuplicateDecision,
    FrozenModelError,
    UnresolvedReference,
    UnsupportedRangeOrCardinality,
)
from dopler.expressions import ALWAYS_TRUE, Expression, referenced_decisions


class DecisionType(Enum):
    """The four mutually exclusive decision kinds."""

    BOOLEAN = "BOOLEAN"
    ENUM = "ENUM"
    NUMBER = "NUMBER"
    STRING = "STRING"

    def matches(self, tag: str) -> bool:
        """Case-insensitive exact match against the canonical tag."""
        return tag.strip().upper() == self.value


@dataclass(frozen=True)
class NumberRange:
    """
    Closed numeric interval [low, high] for NUMBER decisions.

    A single value is represented as the degenerate interval [x, x].
    """

    low: float
    high: float

    def __post_init__(self):
        if not (math.isfinite(self.low) and math.isfinite(self.high)):
            raise UnsupportedRangeOrCardinality(
                "Range bounds must be finite", value=(self.low, self.high)
            )
        if self.low > self.high:
            raise UnsupportedRangeOrCardinality(
                f"Range lower bound {self.low} exceeds upper bound {self.high}",
                value=(self.low, self.high),
            )

    def __contains__(self, value: float) -> bool:
        return self.low <= value <= self.high


@dataclass(frozen=True)
class EnumOptions:
    """Ordered set of distinct option names for ENUM decisions."""

    options: Tuple[str, ...]

    def __post_init__(self):
        if not self.options:
            raise UnsupportedRangeOrCardinality("Option list is empty", value=self.options)
        seen = set()
        for option in self.options:
            if not option:
                raise UnsupportedRangeOrCardinality("Option names must not be blank", value=self.options)
            if option in seen:
                raise UnsupportedRangeOrCardinality(f"Duplicate option '{option}'", value=self.options)
            seen.add(option)

    def __contains__(self, option: str) -> bool:
        return option in self.options

    def __iter__(self) -> Iterator[str]:
        return iter(self.options)

    def __len__(self) -> int:
        return len(self.options)


Range = Union[NumberRange, EnumOptions]


@dataclass(frozen=True)
class Cardinality:
    """How many options of an ENUM decision may be selected at once: min..max."""

    min: int
    max: int

    def __post_init__(self):
        if self.min < 0:
            raise UnsupportedRangeOrCardinality(
                f"Cardinality minimum must be >= 0, got {self.min}", value=(self.min, self.max)
            )
        if self.max < self.min:
            raise UnsupportedRangeOrCardinality(
                f"Cardinality maximum {self.max} is below minimum {self.min}", value=(self.min, self.max)
            )


@dataclass(frozen=True)
class TypeCapabilities:
    """
    What a decision kind may carry.

    Properties:
        range_kind: Range class the kind accepts, or None
        accepts_cardinality: whether a Cardinality may be attached
        implicit_options: options a kind has without a declared range
            (BOOLEAN is always true|false)
    """

    range_kind: Optional[type]
    accepts_cardinality: bool = False
    implicit_options: Tuple[str, ...] = ()


TYPE_CAPABILITIES: Dict[DecisionType, TypeCapabilities] = {
    DecisionType.BOOLEAN: TypeCapabilities(range_kind=None, implicit_options=("true", "false")),
    DecisionType.ENUM: TypeCapabilities(range_kind=EnumOptions, accepts_cardinality=True),
    DecisionType.NUMBER: TypeCapabilities(range_kind=NumberRange),
    DecisionType.STRING: TypeCapabilities(range_kind=None),
}


class ActionKind(Enum):
    """Effects a rule can have on a decision."""

    SET_VALUE = "set"
    SELECT = "select"
    DESELECT = "deselect"
    ALLOW = "allow"
    DISALLOW = "disallow"


@dataclass(frozen=True)
class Action:
    """
    One effect of a rule, e.g. ``Extras = true`` or ``disallow Color.red``.

    Properties:
        kind: ActionKind
        decision_id: target decision
        option: target option for enum targets (optional)
        value: assigned value for SET_VALUE (optional)
    """

    kind: ActionKind
    decision_id: str
    option: Optional[str] = None
    value: Optional[Expression] = None


@dataclass(frozen=True)
class Rule:
    """
    A constraint owned by a decision: when ``condition`` holds, apply ``actions``.

    Rules reference other decisions by id only. They never own them.
    """

    owner: str
    condition: Expression
    actions: Tuple[Action, ...]

    def referenced_ids(self) -> Set[str]:
        """All decision ids this rule mentions, in its condition or its actions."""
        ids = set(referenced_decisions(self.condition))
        for action in self.actions:
            ids.add(action.decision_id)
            if action.value is not None:
                ids |= referenced_decisions(action.value)
        return ids


@dataclass
class Decision:
    """
    A single variability question.

    Properties:
        id:
            Unique key, also used for cross-references in rule/visibility text
        type:
            DecisionType, fixed at construction
        question:
            Human-readable prompt
        range:
            NumberRange (NUMBER) or EnumOptions (ENUM); None otherwise
        cardinality:
            ENUM only
        rules:
            frozenset of Rule
        visibility:
            Expression gating whether the decision is presented;
            ALWAYS_TRUE unless set

    Lifecycle:
        Created with id + type, filled with question/range/cardinality,
        then rules and visibility. Frozen when the owning model is frozen.
    """

    id: str
    type: DecisionType
    question: str = ""
    range: Optional[Range] = None
    cardinality: Optional[Cardinality] = None
    rules: frozenset = field(default_factory=frozenset)
    visibility: Expression = ALWAYS_TRUE
    _frozen: bool = field(default=False, init=False, repr=False, compare=False)

    def __setattr__(self, name, value):
        if name in ("id", "type") and name in self.__dict__:
            raise AttributeError(f"Decision.{name} is fixed at construction")
        if self.__dict__.get("_frozen"):
            raise FrozenModelError(
                f"Cannot change '{name}' of a frozen decision", decision_id=self.id, field=name
            )
        super().__setattr__(name, value)

    @property
    def capabilities(self) -> TypeCapabilities:
        return TYPE_CAPABILITIES[self.type]

    def set_range(self, value_range: Range, lenient: bool = False) -> None:
        """
        Attach a range after checking it against the type's capabilities.

        With ``lenient`` set, option lists are accepted on any non-NUMBER
        decision (the behavior of older DOPLER tooling).
        """
        expected = self.capabilities.range_kind
        accepted = expected is not None and isinstance(value_range, expected)
        if not accepted and lenient:
            accepted = self.type is not DecisionType.NUMBER and isinstance(value_range, EnumOptions)
        if not accepted:
            raise UnsupportedRangeOrCardinality(
                f"Range of kind {type(value_range).__name__} not supported for decision of type {self.type.value}",
                decision_id=self.id,
                field="range",
                value=value_range,
            )
        self.range = value_range

    def set_cardinality(self, cardinality: Cardinality) -> None:
        if not self.capabilities.accepts_cardinality:
            raise UnsupportedRangeOrCardinality(
                f"Cardinality {cardinality.min}:{cardinality.max} not supported for decision of type {self.type.value}",
                decision_id=self.id,
                field="cardinality",
                value=cardinality,
            )
        self.cardinality = cardinality

    def add_rules(self, rules) -> None:
        self.rules = self.rules | frozenset(rules)

    def options(self) -> Tuple[str, ...]:
        """Selectable options: declared enum options or the type's implicit ones."""
        if isinstance(self.range, EnumOptions):
            return self.range.options
        return self.capabilities.implicit_options

    def _freeze(self) -> None:
        object.__setattr__(self, "_frozen", True)


@dataclass
class DecisionModel:
    """
    Root container: an insertion-ordered id -> Decision registry.

    Properties:
        name: display name (file name for file sources)
        source: absolute file path, or "inline" for text input

    INVARIANTS:
        - No two decisions share an id
        - Iteration order equals registration order
        - Once frozen, nothing can be added or changed
    """

    name: str = ""
    source: str = "inline"
    _decisions: Dict[str, Decision] = field(default_factory=dict, repr=False)
    _frozen: bool = field(default=False, init=False, repr=False)

    def add(self, decision: Decision) -> None:
        if self._frozen:
            raise FrozenModelError("Cannot add to a frozen decision model", decision_id=decision.id)
        if decision.id in self._decisions:
            raise DuplicateDecision(f"Decision '{decision.id}' is already defined", decision_id=decision.id)
        self._decisions[decision.id] = decision

    def get(self, decision_id: str) -> Optional[Decision]:
        """
        Retrieve a decision by id.

        Returns:
            Decision or None if not found
        """
        return self._decisions.get(decision_id)

    def require(self, decision_id: str) -> Decision:
        """Retrieve a decision by id, raising UnresolvedReference if absent."""
        decision = self._decisions.get(decision_id)
        if decision is None:
            raise UnresolvedReference(f"Unknown decision '{decision_id}'", decision_id=decision_id)
        return decision

    def size(self) -> int:
        return len(self._decisions)

    def ids(self) -> List[str]:
        return list(self._decisions)

    @property
    def decisions(self) -> List[Decision]:
        return list(self._decisions.values())

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Make the model and every decision in it read-only."""
        for decision in self._decisions.values():
            decision._freeze()
        self._frozen = True

    def __len__(self) -> int:
        return len(self._decisions)

    def __iter__(self) -> Iterator[Decision]:
        return iter(list(self._decisions.values()))

    def __contains__(self, decision_id: object) -> bool:
        return decision_id in self._decisions
