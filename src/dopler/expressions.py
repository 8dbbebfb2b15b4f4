"""
Expression System for decision models

Visibility conditions and rule conditions are represented as
Abstract Syntax Trees (ASTs), never as strings.

This ensures:
    - Hashable, comparable conditions (rules live in sets)
    - Reference extraction without re-parsing
    - Serialization capability

ARCHITECTURAL RULE:
    Nodes are structure only. Parsing lives in dopler.conditions,
    reference checking against a model happens there too.
"""

from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Set, Tuple, Union


class Expression(ABC):
    """
    Base class for all AST expressions.

    This class is structure only. It has no evaluation logic.
    """
    pass


class BinaryOperator(Enum):
    """Binary operators supported in conditions."""

    # Logical operators
    AND = "AND"
    OR = "OR"

    # Comparison operators
    EQUALS = "=="
    NOT_EQUALS = "!="
    GREATER_THAN = ">"
    GREATER_EQUAL = ">="
    LESS_THAN = "<"
    LESS_EQUAL = "<="


@dataclass(frozen=True)
class BinaryExpression(Expression):
    """
    Represents a binary logical or comparison expression.

    Example:
        Color == red && isTaken(Extras)

    Becomes:
        BinaryExpression(
            operator=BinaryOperator.AND,
            left=BinaryExpression(
                operator=BinaryOperator.EQUALS,
                left=DecisionReference("Color"),
                right=Literal("red")
            ),
            right=FunctionCall("isTaken", (DecisionReference("Extras"),))
        )
    """

    operator: BinaryOperator
    left: "Expression"
    right: "Expression"


@dataclass(frozen=True)
class DecisionReference(Expression):
    """
    References a decision by id.

    Used on its own it means "the decision is taken" (for a boolean
    decision: answered true). In a comparison it stands for the
    decision's value.
    """

    decision_id: str


@dataclass(frozen=True)
class OptionReference(Expression):
    """
    References one option of an enumeration decision (``Color.red``).

    True when that option is among the selected values.
    """

    decision_id: str
    option: str


@dataclass(frozen=True, eq=False)
class Literal(Expression):
    """
    Represents a literal constant value.

    Two literals are equal only when their values have the same Python
    type, so ``1``, ``1.0`` and ``true`` stay distinct.

    Examples:
        - 10
        - 2.5
        - 'red'
        - true
    """

    value: Union[int, float, str, bool]

    def _key(self):
        return (type(self.value), self.value)

    def __eq__(self, other):
        if not isinstance(other, Literal):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())


class UnaryOperator(Enum):
    """Unary operators."""
    NOT = "NOT"


@dataclass(frozen=True)
class UnaryExpression(Expression):
    """
    Represents a unary operation.

    Example:
        !isTaken(Extras)
    """

    operator: UnaryOperator
    operand: Expression


@dataclass(frozen=True)
class FunctionCall(Expression):
    """
    Represents a DOPLER predicate call such as ``isTaken(Color)``.

    Arguments are kept in a tuple so the node stays hashable.
    """

    name: str
    arguments: Tuple[Expression, ...] = ()


# A blank visibility field means "always visible".
ALWAYS_TRUE = Literal(True)


def iter_nodes(expr: Expression) -> Iterator[Expression]:
    """Yield every node of an expression tree, parents before children."""
    if expr is None:
        return
    yield expr
    if isinstance(expr, BinaryExpression):
        yield from iter_nodes(expr.left)
        yield from iter_nodes(expr.right)
    elif isinstance(expr, UnaryExpression):
        yield from iter_nodes(expr.operand)
    elif isinstance(expr, FunctionCall):
        for arg in expr.arguments:
            yield from iter_nodes(arg)


def referenced_decisions(expr: Expression) -> Set[str]:
    """Collect every decision id referenced anywhere in an expression tree."""
    if expr is None:
        return set()

    if isinstance(expr, (DecisionReference, OptionReference)):
        return {expr.decision_id}
    elif isinstance(expr, BinaryExpression):
        return referenced_decisions(expr.left) | referenced_decisions(expr.right)
    elif isinstance(expr, UnaryExpression):
        return referenced_decisions(expr.operand)
    elif isinstance(expr, FunctionCall):
        ids: Set[str] = set()
        for arg in expr.arguments:
            ids |= referenced_decisions(arg)
        return ids

    return set()
