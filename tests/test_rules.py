"""
Tests for the rules parser (RULES cell fragments -> Rule set).
"""

import pytest
from dopler.exceptions import ExpressionSyntaxError, UnresolvedReference
from dopler.expressions import BinaryOperator, DecisionReference, Literal, OptionReference
from dopler.model import Action, ActionKind, Decision, DecisionModel, DecisionType, EnumOptions
from dopler.rules import RulesParser


@pytest.fixture
def model():
    m = DecisionModel(name="rules")
    m.add(Decision(id="A", type=DecisionType.BOOLEAN))
    b = Decision(id="B", type=DecisionType.ENUM)
    b.set_range(EnumOptions(("x", "y")))
    m.add(b)
    m.add(Decision(id="Size", type=DecisionType.NUMBER))
    m.add(Decision(id="Name", type=DecisionType.STRING))
    return m


@pytest.fixture
def parser(model):
    return RulesParser(model)


class TestPostfixRules:
    """<actions> if <condition>."""

    def test_select_owner_option(self, model, parser):
        """'select y if A' on B selects B's own option y when A holds."""
        rules = parser.parse(model.get("B"), ["select y", "A"])
        assert len(rules) == 1
        rule = next(iter(rules))
        assert rule.owner == "B"
        assert rule.condition == DecisionReference("A")
        assert rule.actions == (Action(ActionKind.SELECT, "B", option="y"),)
        assert "A" in rule.referenced_ids()

    def test_chained_clauses(self, model, parser):
        """'select x if A; deselect y if Size > 3' gives two rules."""
        rules = parser.parse(model.get("B"), ["select x", "A; deselect y", "Size > 3"])
        assert len(rules) == 2
        kinds = {r.actions[0].kind for r in rules}
        assert kinds == {ActionKind.SELECT, ActionKind.DESELECT}

    def test_several_actions(self, model, parser):
        """Comma-separated actions share one condition."""
        rules = parser.parse(model.get("A"), ["select B.x, Size = 4", "A"])
        rule = next(iter(rules))
        assert rule.actions == (
            Action(ActionKind.SELECT, "B", option="x"),
            Action(ActionKind.SET_VALUE, "Size", value=Literal(4)),
        )

    def test_actions_without_condition(self, model, parser):
        """Trailing actions need an if."""
        with pytest.raises(ExpressionSyntaxError):
            parser.parse(model.get("B"), ["select y"])


class TestPrefixRules:
    """if <condition> { <actions> } (DOPLER notation)."""

    def test_braced_clause(self, model, parser):
        """(c) { id = value; } sets a value."""
        rules = parser.parse(model.get("A"), ["(A) { B = y; }"])
        rule = next(iter(rules))
        assert rule.condition == DecisionReference("A")
        assert rule.actions == (Action(ActionKind.SET_VALUE, "B", value=Literal("y")),)

    def test_function_style_actions(self, model, parser):
        """allow(...) and disAllow(...) take an option target."""
        rules = parser.parse(model.get("A"), ["(Size > 10) { disAllow(B.x); allow(B.y); }"])
        rule = next(iter(rules))
        assert rule.condition.operator == BinaryOperator.GREATER_THAN
        assert rule.actions == (
            Action(ActionKind.DISALLOW, "B", option="x"),
            Action(ActionKind.ALLOW, "B", option="y"),
        )

    def test_multiple_clauses(self, model, parser):
        """Each braced clause is its own rule."""
        rules = parser.parse(model.get("A"), ["(B.x) { Size = 1; }", "(B.y) { Size = 2; }"])
        assert len(rules) == 2
        conditions = {r.condition for r in rules}
        assert conditions == {OptionReference("B", "x"), OptionReference("B", "y")}

    def test_set_string_value(self, model, parser):
        """Quoted values are string literals."""
        rules = parser.parse(model.get("A"), ["(A) { Name = 'Bob'; }"])
        assert next(iter(rules)).actions[0].value == Literal("Bob")

    def test_set_boolean_value(self, model, parser):
        """true and false are boolean literals."""
        rules = parser.parse(model.get("B"), ["(B.x) { A = false; }"])
        assert next(iter(rules)).actions[0].value == Literal(False)

    def test_identical_clauses_collapse(self, model, parser):
        """Rules form a set."""
        rules = parser.parse(model.get("A"), ["(A) { Size = 1; }", "(A) { Size = 1; }"])
        assert len(rules) == 1

    def test_clauses_differing_in_value_type(self, model, parser):
        """Size = 1 and Size = true stay two rules."""
        rules = parser.parse(model.get("A"), ["(A) { Size = 1; }", "(A) { Size = true; }"])
        assert len(rules) == 2
        assert {r.actions[0].value for r in rules} == {Literal(1), Literal(True)}

    def test_missing_closing_brace(self, model, parser):
        """An opened brace must be closed."""
        with pytest.raises(ExpressionSyntaxError):
            parser.parse(model.get("A"), ["(A) { Size = 1;"])

    def test_text_after_brace(self, model, parser):
        """Nothing may follow the closing brace."""
        with pytest.raises(ExpressionSyntaxError):
            parser.parse(model.get("A"), ["(A) { Size = 1; } extra"])

    def test_empty_actions(self, model, parser):
        """A clause needs at least one action."""
        with pytest.raises(ExpressionSyntaxError):
            parser.parse(model.get("A"), ["(A) { }"])

    def test_empty_condition(self, model, parser):
        """A braced clause needs a condition."""
        with pytest.raises(ExpressionSyntaxError):
            parser.parse(model.get("A"), ["{ Size = 1; }"])


class TestResolution:
    """Every target and condition must resolve against the model."""

    def test_unknown_condition_reference(self, model, parser):
        """Conditions resolve against the model."""
        with pytest.raises(UnresolvedReference) as exc:
            parser.parse(model.get("B"), ["select y", "Ghost"])
        assert exc.value.decision_id == "Ghost"

    def test_unknown_target(self, model, parser):
        """Action targets resolve against the model."""
        with pytest.raises(UnresolvedReference):
            parser.parse(model.get("A"), ["(A) { select Ghost; }"])

    def test_unknown_option(self, model, parser):
        """Option targets must exist."""
        with pytest.raises(UnresolvedReference):
            parser.parse(model.get("A"), ["(A) { select B.z; }"])

    def test_bare_option_only_for_enum_owner(self, model, parser):
        """'select y' on a non-enum owner has nothing to refer to."""
        with pytest.raises(UnresolvedReference):
            parser.parse(model.get("A"), ["select y", "A"])

    def test_unknown_value(self, model, parser):
        """Bare values must be options of the target."""
        with pytest.raises(UnresolvedReference):
            parser.parse(model.get("A"), ["(A) { B = z; }"])

    def test_unrecognized_action(self, model, parser):
        """Unknown verbs are a syntax error."""
        with pytest.raises(ExpressionSyntaxError):
            parser.parse(model.get("A"), ["(A) { explode B; }"])
