"""
Export helpers for inspecting a loaded DecisionModel.

Produces a plain dict view of the model, dumped as JSON or YAML. This is
a one-way, read-only export; models are only ever loaded from CSV.
"""
from __future__ import annotations

import json
from typing import Any, Dict

import yaml

from dopler.expressions import (
    BinaryExpression,
    DecisionReference,
    Expression,
    FunctionCall,
    Literal,
    OptionReference,
    UnaryExpression,
)
from dopler.model import Action, Decision, DecisionModel, EnumOptions, NumberRange, Rule


def expr_to_dict(expr: Expression | None) -> Any:
    if expr is None:
        return None
    if isinstance(expr, BinaryExpression):
        return {
            "type": "binary",
            "operator": expr.operator.value,
            "left": expr_to_dict(expr.left),
            "right": expr_to_dict(expr.right),
        }
    if isinstance(expr, DecisionReference):
        return {"type": "decision", "id": expr.decision_id}
    if isinstance(expr, OptionReference):
        return {"type": "option", "id": expr.decision_id, "option": expr.option}
    if isinstance(expr, Literal):
        return {"type": "lit", "value": expr.value}
    if isinstance(expr, UnaryExpression):
        return {
            "type": "unary",
            "operator": expr.operator.value,
            "operand": expr_to_dict(expr.operand),
        }
    if isinstance(expr, FunctionCall):
        return {
            "type": "call",
            "name": expr.name,
            "arguments": [expr_to_dict(a) for a in expr.arguments],
        }
    raise TypeError(f"Unsupported Expression type: {type(expr)}")


def range_to_dict(r: NumberRange | EnumOptions | None) -> Dict[str, Any] | None:
    if r is None:
        return None
    if isinstance(r, NumberRange):
        return {"low": r.low, "high": r.high}
    return {"options": list(r.options)}


def action_to_dict(a: Action) -> Dict[str, Any]:
    return {
        "kind": a.kind.value,
        "decision": a.decision_id,
        "option": a.option,
        "value": expr_to_dict(a.value),
    }


def rule_to_dict(r: Rule) -> Dict[str, Any]:
    return {
        "condition": expr_to_dict(r.condition),
        "actions": [action_to_dict(a) for a in r.actions],
    }


def decision_to_dict(d: Decision) -> Dict[str, Any]:
    # rules are a set; sort for stable output
    rules = sorted((rule_to_dict(r) for r in d.rules), key=lambda r: json.dumps(r, sort_keys=True))
    return {
        "id": d.id,
        "type": d.type.value,
        "question": d.question,
        "range": range_to_dict(d.range),
        "cardinality": None if d.cardinality is None else {"min": d.cardinality.min, "max": d.cardinality.max},
        "rules": rules,
        "visibility": expr_to_dict(d.visibility),
    }


def model_to_dict(m: DecisionModel) -> Dict[str, Any]:
    return {
        "name": m.name,
        "source": m.source,
        "decisions": [decision_to_dict(d) for d in m],
    }


def model_to_json(m: DecisionModel) -> str:
    return json.dumps(model_to_dict(m), sort_keys=True)


def model_to_yaml(m: DecisionModel) -> str:
    return yaml.safe_dump(model_to_dict(m), sort_keys=False)
