"""
Rules parser: clause fragments of a RULES cell -> set of Rule objects.

The deserializer cuts a RULES cell at the keyword ``if`` and hands the
fragments here. Two clause shapes are understood:

    Prefix (DOPLER):   if (Size > 10) { Extras = true; disallow Color.red }
                       fragment: "(Size > 10) { Extras = true; disallow Color.red }"

    Postfix:           select y if A; deselect z if B
                       fragments: "select y", "A; deselect z", "B"

Actions:
    <target> = <value>
    select | deselect | allow | disallow  <target>   (parentheses optional)

A target is a decision id, ``id.option``, or a bare option of the owning
enumeration decision.
"""

from typing import List, Optional, Sequence, Set, Tuple

from dopler.conditions import ConditionParser, Token, tokenize
from dopler.exceptions import ExpressionSyntaxError, UnresolvedReference
from dopler.expressions import Expression, Literal
from dopler.model import Action, ActionKind, Decision, DecisionModel, EnumOptions, Rule


VERBS = {
    "select": ActionKind.SELECT,
    "deselect": ActionKind.DESELECT,
    "allow": ActionKind.ALLOW,
    "disallow": ActionKind.DISALLOW,
}


def _find_op(tokens: List[Token], op: str, start: int = 0) -> Optional[int]:
    for i in range(start, len(tokens)):
        if tokens[i].is_op(op):
            return i
    return None


def _split_top_level(tokens: List[Token], separators: Tuple[str, ...]) -> List[List[Token]]:
    """Split tokens at separators that are not inside parentheses."""
    parts: List[List[Token]] = [[]]
    depth = 0
    for token in tokens:
        if token.is_op("("):
            depth += 1
        elif token.is_op(")"):
            depth -= 1
        if depth == 0 and token.is_op(*separators):
            parts.append([])
            continue
        parts[-1].append(token)
    return parts


def _split_once(tokens: List[Token], separator: str) -> Tuple[List[Token], List[Token]]:
    """Split at the first top-level separator; the tail is empty if there is none."""
    parts = _split_top_level(tokens, (separator,))
    head = parts[0]
    return head, tokens[len(head) + 1:]


class RulesParser:
    """
    Resolves rule clauses against a fully populated decision model.

    Args:
        model: DecisionModel that every referenced id must exist in
        conditions: ConditionParser to use for clause conditions
            (one bound to ``model`` is created if omitted)
    """

    def __init__(self, model: DecisionModel, conditions: Optional[ConditionParser] = None):
        self.model = model
        self.conditions = conditions or ConditionParser(model)

    def parse(self, owner: Decision, fragments: Sequence[str]) -> Set[Rule]:
        """
        Parse the clause fragments of one RULES cell.

        Raises:
            ExpressionSyntaxError: malformed clause or action
            UnresolvedReference: unknown decision or option
        """
        rules: Set[Rule] = set()
        pending: Optional[Tuple[Action, ...]] = None

        for fragment in fragments:
            tokens = tokenize(fragment)
            if not tokens:
                continue

            if pending is not None:
                # Condition of a postfix clause, possibly followed by the next action list.
                head, tail = _split_once(tokens, ";")
                condition = self.conditions.parse_tokens(head, source=fragment)
                rules.add(Rule(owner=owner.id, condition=condition, actions=pending))
                pending = self._parse_actions(owner, tail, fragment) if tail else None
                continue

            brace = _find_op(tokens, "{")
            if brace is None:
                pending = self._parse_actions(owner, tokens, fragment)
                continue

            close = _find_op(tokens, "}", brace)
            if close is None:
                raise ExpressionSyntaxError("Missing '}' in rule clause", value=fragment)
            if close != len(tokens) - 1:
                raise ExpressionSyntaxError(f"Unexpected token '{tokens[close + 1].text}' after rule clause", value=fragment)
            condition = self.conditions.parse_tokens(tokens[:brace], source=fragment)
            actions = self._parse_actions(owner, tokens[brace + 1:close], fragment)
            rules.add(Rule(owner=owner.id, condition=condition, actions=actions))

        if pending is not None:
            raise ExpressionSyntaxError("Rule actions without a condition", decision_id=owner.id)

        return rules

    def _parse_actions(self, owner: Decision, tokens: List[Token], fragment: str) -> Tuple[Action, ...]:
        actions = []
        for segment in _split_top_level(tokens, (";", ",")):
            if segment:
                actions.append(self._parse_action(owner, segment, fragment))
        if not actions:
            raise ExpressionSyntaxError("Rule clause has no actions", value=fragment)
        return tuple(actions)

    def _parse_action(self, owner: Decision, segment: List[Token], fragment: str) -> Action:
        head = segment[0]

        if len(segment) >= 2 and segment[1].is_op("=", "==") and head.kind == "name":
            if len(segment) != 3:
                raise ExpressionSyntaxError("Assignment takes exactly one value", value=fragment)
            decision_id, option = self._resolve_target(owner, head.text)
            value = self._resolve_value(decision_id, segment[2], fragment)
            return Action(ActionKind.SET_VALUE, decision_id, option=option, value=value)

        if head.kind == "name" and head.text.lower() in VERBS:
            kind = VERBS[head.text.lower()]
            target = segment[1:]
            if len(target) >= 2 and target[0].is_op("(") and target[-1].is_op(")"):
                target = target[1:-1]
            if len(target) != 1 or target[0].kind != "name":
                raise ExpressionSyntaxError(f"'{head.text}' takes exactly one target", value=fragment)
            decision_id, option = self._resolve_target(owner, target[0].text)
            return Action(kind, decision_id, option=option)

        raise ExpressionSyntaxError(f"Unrecognized rule action starting at '{head.text}'", value=fragment)

    def _resolve_target(self, owner: Decision, name: str) -> Tuple[str, Optional[str]]:
        if "." in name:
            decision_id, option = name.split(".", 1)
            decision = self.model.require(decision_id)
            if isinstance(decision.range, EnumOptions) and option not in decision.range:
                raise UnresolvedReference(
                    f"Decision '{decision_id}' has no option '{option}'", decision_id=decision_id, value=option
                )
            return decision_id, option
        if name in self.model:
            return name, None
        if isinstance(owner.range, EnumOptions) and name in owner.range:
            return owner.id, name
        raise UnresolvedReference(f"Unknown decision or option '{name}'", decision_id=name)

    def _resolve_value(self, decision_id: str, token: Token, fragment: str) -> Expression:
        if token.kind != "name" or token.is_word("TRUE", "FALSE"):
            return self.conditions.parse_tokens([token], source=fragment)
        target = self.model.require(decision_id)
        if token.text in target.options():
            return Literal(token.text)
        return self.conditions.parse_tokens([token], source=fragment)
