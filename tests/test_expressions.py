"""
Tests for the expression AST.

These tests verify:
    - Nodes are immutable and hashable
    - Tree walking and reference extraction
"""

import pytest
from dopler.expressions import (
    ALWAYS_TRUE,
    BinaryExpression,
    BinaryOperator,
    DecisionReference,
    Expression,
    FunctionCall,
    Literal,
    OptionReference,
    UnaryExpression,
    UnaryOperator,
    iter_nodes,
    referenced_decisions,
)


class TestNodes:
    """Test node construction."""

    def test_decision_reference_is_expression(self):
        """References are expressions."""
        assert isinstance(DecisionReference("A"), Expression)

    def test_decision_reference_immutable(self):
        """Nodes are frozen."""
        ref = DecisionReference("A")
        with pytest.raises(AttributeError):
            ref.decision_id = "B"

    def test_always_true(self):
        """Blank visibility resolves to the literal true."""
        assert ALWAYS_TRUE == Literal(True)

    def test_structural_equality(self):
        """Equal trees compare and hash equal."""
        a = BinaryExpression(BinaryOperator.EQUALS, DecisionReference("Color"), Literal("red"))
        b = BinaryExpression(BinaryOperator.EQUALS, DecisionReference("Color"), Literal("red"))
        assert a == b
        assert hash(a) == hash(b)

    def test_literal_equality_includes_type(self):
        """true, 1 and 1.0 are different literals."""
        assert Literal(True) != Literal(1)
        assert Literal(1) != Literal(1.0)
        assert len({Literal(True), Literal(1), Literal(1.0)}) == 3
        assert ALWAYS_TRUE != Literal(1)

    def test_literal_type_inside_tree(self):
        """Literal types also separate the expressions that contain them."""
        a = BinaryExpression(BinaryOperator.EQUALS, DecisionReference("N"), Literal(1))
        b = BinaryExpression(BinaryOperator.EQUALS, DecisionReference("N"), Literal(True))
        assert a != b
        assert len({a, b}) == 2

    def test_function_call_hashable(self):
        """Calls can be set members."""
        call = FunctionCall("isTaken", (DecisionReference("A"),))
        assert {call, call} == {call}


class TestReferenceExtraction:
    """Test collecting referenced decision ids."""

    def test_nested(self):
        """References are collected through every node kind."""
        expr = BinaryExpression(
            BinaryOperator.AND,
            UnaryExpression(UnaryOperator.NOT, DecisionReference("A")),
            BinaryExpression(
                BinaryOperator.OR,
                OptionReference("Color", "red"),
                FunctionCall("isTaken", (DecisionReference("B"),)),
            ),
        )
        assert referenced_decisions(expr) == {"A", "Color", "B"}

    def test_literal_has_no_references(self):
        """Literals reference nothing."""
        assert referenced_decisions(Literal(3)) == set()

    def test_none(self):
        """No expression references nothing."""
        assert referenced_decisions(None) == set()

    def test_iter_nodes_order(self):
        """Parents are yielded before children."""
        left = DecisionReference("A")
        right = Literal(1)
        expr = BinaryExpression(BinaryOperator.EQUALS, left, right)
        assert list(iter_nodes(expr)) == [expr, left, right]
