"""
Condition parser: visibility/rule condition text -> Expression AST.

Grammar (lowest precedence first):
    or_expr   := and_expr (("||" | OR) and_expr)*
    and_expr  := cmp_expr (("&&" | AND) cmp_expr)*
    cmp_expr  := unary (("==" | "=" | "!=" | "<" | ">" | "<=" | ">=") unary)?
    unary     := ("!" | NOT) unary | primary
    primary   := "(" or_expr ")" | literal | call | IDENT | IDENT.OPTION
    call      := isTaken(...) | isSelected(...)

Every decision id a condition mentions must already be registered in the
model the parser was built with.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from dopler.exceptions import ExpressionSyntaxError, UnresolvedReference
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
)
from dopler.model import DecisionModel, EnumOptions


_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<string>'[^']*'|"[^"]*")
      | (?P<number>-?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+))
      | (?P<name>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+)?)
      | (?P<op>&&|\|\||==|!=|<=|>=|<|>|=|!|\(|\)|\{|\}|;|,)
      | (?P<bad>\S)
    )
    """,
    re.VERBOSE,
)

_COMPARISONS = {
    "==": BinaryOperator.EQUALS,
    "=": BinaryOperator.EQUALS,
    "!=": BinaryOperator.NOT_EQUALS,
    "<": BinaryOperator.LESS_THAN,
    ">": BinaryOperator.GREATER_THAN,
    "<=": BinaryOperator.LESS_EQUAL,
    ">=": BinaryOperator.GREATER_EQUAL,
}

# Predicates understood in conditions, keyed by lower-cased name.
FUNCTIONS = {
    "istaken": "isTaken",
    "isselected": "isSelected",
}


@dataclass(frozen=True)
class Token:
    kind: str  # string, number, name or op
    text: str

    def is_op(self, *ops: str) -> bool:
        return self.kind == "op" and self.text in ops

    def is_word(self, *words: str) -> bool:
        return self.kind == "name" and self.text.upper() in words


def tokenize(text: str) -> List[Token]:
    """Split condition/rule text into tokens."""
    tokens = []
    for match in _TOKEN_RE.finditer(text):
        kind = match.lastgroup
        if kind is None:
            continue
        if kind == "bad":
            raise ExpressionSyntaxError(
                f"Unexpected character '{match.group(kind)}' at position {match.start(kind)}", value=text
            )
        tokens.append(Token(kind, match.group(kind)))
    return tokens


class ConditionParser:
    """
    Parses condition text against a (fully populated) decision model.

    Args:
        model: DecisionModel used to resolve decision ids and options
    """

    def __init__(self, model: DecisionModel):
        self.model = model

    def parse(self, text: Optional[str]) -> Expression:
        """
        Parse a condition.

        Returns:
            Expression AST; ALWAYS_TRUE for blank input

        Raises:
            ExpressionSyntaxError: if the text is malformed
            UnresolvedReference: if it names an unknown decision or option
        """
        if text is None or not text.strip():
            return ALWAYS_TRUE
        return self.parse_tokens(tokenize(text), source=text)

    def parse_tokens(self, tokens: List[Token], source: Optional[str] = None) -> Expression:
        """Parse an already tokenized condition (used by the rules parser)."""
        if not tokens:
            raise ExpressionSyntaxError("Empty condition", value=source)
        try:
            expr, pos = self._parse_or(tokens, 0)
        except ExpressionSyntaxError as e:
            raise e.add_context(value=source)
        if pos < len(tokens):
            raise ExpressionSyntaxError(f"Unexpected token '{tokens[pos].text}'", value=source)
        self.check_references(expr)
        return expr

    def check_references(self, expr: Expression) -> None:
        """Ensure every decision and option the expression names exists."""
        for node in iter_nodes(expr):
            if isinstance(node, DecisionReference):
                self.model.require(node.decision_id)
            elif isinstance(node, OptionReference):
                decision = self.model.require(node.decision_id)
                if isinstance(decision.range, EnumOptions) and node.option not in decision.range:
                    raise UnresolvedReference(
                        f"Decision '{node.decision_id}' has no option '{node.option}'",
                        decision_id=node.decision_id,
                        value=node.option,
                    )

    def _parse_or(self, tokens: List[Token], pos: int) -> Tuple[Expression, int]:
        """Parse OR expression (lowest precedence)."""
        left, pos = self._parse_and(tokens, pos)

        while pos < len(tokens) and (tokens[pos].is_op("||") or tokens[pos].is_word("OR")):
            right, pos = self._parse_and(tokens, pos + 1)
            left = BinaryExpression(BinaryOperator.OR, left, right)

        return left, pos

    def _parse_and(self, tokens: List[Token], pos: int) -> Tuple[Expression, int]:
        """Parse AND expression."""
        left, pos = self._parse_comparison(tokens, pos)

        while pos < len(tokens) and (tokens[pos].is_op("&&") or tokens[pos].is_word("AND")):
            right, pos = self._parse_comparison(tokens, pos + 1)
            left = BinaryExpression(BinaryOperator.AND, left, right)

        return left, pos

    def _parse_comparison(self, tokens: List[Token], pos: int) -> Tuple[Expression, int]:
        """Parse comparison expression (==, !=, <, >, <=, >=)."""
        left, pos = self._parse_unary(tokens, pos)

        if pos < len(tokens) and tokens[pos].kind == "op" and tokens[pos].text in _COMPARISONS:
            operator = _COMPARISONS[tokens[pos].text]
            right, pos = self._parse_unary(tokens, pos + 1)
            right = self._option_literal(left, right)
            left = self._option_literal(right, left)
            left = BinaryExpression(operator, left, right)

        return left, pos

    def _option_literal(self, other: Expression, operand: Expression) -> Expression:
        # Color == red or red == Color: a bare name that is one of Color's
        # options, not a decision.
        if not (isinstance(other, DecisionReference) and isinstance(operand, DecisionReference)):
            return operand
        if operand.decision_id in self.model:
            return operand
        decision = self.model.get(other.decision_id)
        if decision is not None and operand.decision_id in decision.options():
            return Literal(operand.decision_id)
        return operand

    def _parse_unary(self, tokens: List[Token], pos: int) -> Tuple[Expression, int]:
        """Parse unary expression (NOT)."""
        if pos < len(tokens) and (tokens[pos].is_op("!") or tokens[pos].is_word("NOT")):
            operand, pos = self._parse_unary(tokens, pos + 1)
            return UnaryExpression(UnaryOperator.NOT, operand), pos

        return self._parse_primary(tokens, pos)

    def _parse_primary(self, tokens: List[Token], pos: int) -> Tuple[Expression, int]:
        """Parse primary expression (literal, reference, call or parenthesized)."""
        if pos >= len(tokens):
            raise ExpressionSyntaxError("Unexpected end of expression")

        token = tokens[pos]

        if token.is_op("("):
            expr, pos = self._parse_or(tokens, pos + 1)
            if pos >= len(tokens) or not tokens[pos].is_op(")"):
                raise ExpressionSyntaxError("Missing closing parenthesis")
            return expr, pos + 1

        if token.kind == "string":
            return Literal(token.text[1:-1]), pos + 1

        if token.kind == "number":
            if "." in token.text:
                return Literal(float(token.text)), pos + 1
            return Literal(int(token.text)), pos + 1

        if token.kind == "name":
            if token.is_word("TRUE"):
                return Literal(True), pos + 1
            if token.is_word("FALSE"):
                return Literal(False), pos + 1
            if pos + 1 < len(tokens) and tokens[pos + 1].is_op("("):
                return self._parse_call(tokens, pos)
            if "." in token.text:
                decision_id, option = token.text.split(".", 1)
                return OptionReference(decision_id, option), pos + 1
            return DecisionReference(token.text), pos + 1

        raise ExpressionSyntaxError(f"Unexpected token '{token.text}'")

    def _parse_call(self, tokens: List[Token], pos: int) -> Tuple[Expression, int]:
        name = FUNCTIONS.get(tokens[pos].text.lower())
        if name is None:
            raise ExpressionSyntaxError(f"Unknown function '{tokens[pos].text}'")
        pos += 2  # name and '('

        arguments = []
        if pos < len(tokens) and not tokens[pos].is_op(")"):
            while True:
                arg, pos = self._parse_or(tokens, pos)
                arguments.append(arg)
                if pos >= len(tokens):
                    raise ExpressionSyntaxError(f"Missing closing parenthesis in call to {name}")
                if tokens[pos].is_op(")"):
                    break
                if not tokens[pos].is_op(","):
                    raise ExpressionSyntaxError(f"Expected ',' or ')' in call to {name}, got '{tokens[pos].text}'")
                pos += 1
        if pos >= len(tokens) or not tokens[pos].is_op(")"):
            raise ExpressionSyntaxError(f"Missing closing parenthesis in call to {name}")

        if len(arguments) != 1 or not isinstance(arguments[0], (DecisionReference, OptionReference)):
            raise ExpressionSyntaxError(f"{name} takes exactly one decision or option reference")

        return FunctionCall(name, tuple(arguments)), pos + 1
