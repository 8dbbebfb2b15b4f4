"""
Decision model deserializer (tabular text -> DecisionModel).

CSV Format (one decision per row, header required):
    ID; Question; Type; Range; Cardinality; Constraint/Rule; Visible/relevant if

Header names are matched case-insensitively; RULES and VISIBILITY are
accepted as short names for the last two columns. The delimiter (';', ','
or tab) is detected from the header line unless configured.

Two passes over the same materialized rows:
    STRUCTURAL  - build every decision (type, question, range, cardinality)
                  and register it in the model
    RESOLUTION  - attach rules and visibility, which may reference any
                  decision registered in the first pass

Any error aborts the whole call; no partial model is returned.
"""

import csv
import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from io import StringIO
from pathlib import Path
from typing import Dict, List, Optional, Union

from dopler.conditions import ConditionParser
from dopler.config import DeserializerConfig
from dopler.exceptions import (
    DecisionModelError,
    IOFailure,
    UnsupportedFormat,
    UnsupportedRangeOrCardinality,
)
from dopler.factory import DecisionFactory
from dopler.model import Decision, DecisionModel, DecisionType
from dopler.rules import RulesParser

logger = logging.getLogger(__name__)


class Phase(Enum):
    """Deserializer states, visited once each, in this order."""
    STRUCTURAL = "structural"
    RESOLUTION = "resolution"


@dataclass(frozen=True)
class Format:
    """A text format the deserializer understands."""
    name: str
    extension: str


CSV_FORMAT = Format("csv", ".csv")

COLUMNS = ("id", "question", "type", "range", "cardinality", "rules", "visibility")

HEADER_ALIASES = {
    "id": "id",
    "question": "question",
    "type": "type",
    "range": "range",
    "cardinality": "cardinality",
    "rules": "rules",
    "constraint/rule": "rules",
    "visibility": "visibility",
    "visible/relevant if": "visibility",
}

CARDINALITY_NOT_SUPPORTED_ERROR = "Cardinality {} not supported for decision of type {}"

# A hyphen separates the bounds when it follows a number or precedes
# whitespace/end; a hyphen directly before a digit is a sign.
_NUMBER_RANGE_SEPARATOR = re.compile(r"(?<=[0-9.])\s*-|-(?=\s|$)")
_RULE_KEYWORD = re.compile(r"\bif\b")
_INTEGER = re.compile(r"[+-]?[0-9]+")


@dataclass
class DecisionRecord:
    """One raw input row, cells untrimmed."""
    row: int
    id: str
    question: str
    type: str
    range: str
    cardinality: str
    rules: str
    visibility: str


def _detect_delimiter(text: str) -> str:
    header = next((line for line in text.splitlines() if line.strip()), "")
    counts = {d: header.count(d) for d in (";", ",", "\t")}
    best = max(counts, key=counts.get)
    return best if counts[best] else ","


def read_records(text: str, delimiter: Optional[str] = None) -> List[DecisionRecord]:
    """
    Materialize all rows of the input once.

    Raises:
        UnsupportedFormat: empty input, missing columns or broken CSV
    """
    if not text or not text.strip():
        raise UnsupportedFormat("Decision model input is empty")

    reader = csv.DictReader(StringIO(text), delimiter=delimiter or _detect_delimiter(text))
    try:
        fieldnames = reader.fieldnames or []
        columns: Dict[str, str] = {}
        for name in fieldnames:
            key = HEADER_ALIASES.get((name or "").strip().lstrip("\ufeff").lower())
            if key is not None and key not in columns.values():
                columns[name] = key

        missing = [c for c in COLUMNS if c not in columns.values()]
        if missing:
            raise UnsupportedFormat(f"Missing required columns: {missing}", value=fieldnames)

        records = []
        for row in reader:
            cells = {key: row.get(name) or "" for name, key in columns.items()}
            records.append(DecisionRecord(row=reader.line_num, **cells))
    except csv.Error as e:
        raise UnsupportedFormat(f"Malformed CSV at line {reader.line_num}: {e}", row=reader.line_num) from e

    return records


def split_number_range(text: str) -> List[str]:
    """'0 - 10' -> ['0', '10']; '-5 - 5' -> ['-5', '5']; '- 10' -> ['10']."""
    return [t.strip() for t in _NUMBER_RANGE_SEPARATOR.split(text) if t.strip()]


def split_options(text: str) -> List[str]:
    return [t.strip() for t in text.split("|") if t.strip()]


def split_cardinality(text: str) -> List[str]:
    return [t.strip() for t in text.split(":") if t.strip()]


def split_rule_clauses(text: str, mode: str = "keyword") -> List[str]:
    """
    Cut a RULES cell into clause fragments at ``if``.

    "keyword" only cuts where ``if`` is a whole word, so ids such as
    ``Motif`` survive; "substring" cuts at every ``if``.
    """
    if mode == "substring":
        parts = text.split("if")
    else:
        parts = _RULE_KEYWORD.split(text)
    return [p.strip() for p in parts if p.strip()]


class DecisionModelDeserializer:
    """
    Builds a DecisionModel from tabular text.

    Args:
        factory: DecisionFactory to build entities with
            (one using the config's type aliases if omitted)
        config: DeserializerConfig (defaults if omitted)
    """

    def __init__(self, factory: Optional[DecisionFactory] = None, config: Optional[DeserializerConfig] = None):
        self.config = config or DeserializerConfig()
        self.factory = factory or DecisionFactory(self.config.type_aliases)

    def supported_formats(self) -> List[Format]:
        return [CSV_FORMAT]

    def deserialize(self, text: str, fmt: Format = CSV_FORMAT, name: str = "DecisionModel") -> DecisionModel:
        """
        Deserialize in-memory text.

        Raises:
            UnsupportedFormat: if fmt is not CSV_FORMAT
            DecisionModelError: for any type, range or reference problem
        """
        if fmt != CSV_FORMAT:
            raise UnsupportedFormat(f"Unsupported format '{fmt.name}'", value=fmt.name)
        return self._deserialize_text(text, name=name, source="inline")

    def deserialize_from_file(self, path: Union[str, os.PathLike]) -> DecisionModel:
        """
        Deserialize a CSV file. The model is named after the file.

        Raises:
            IOFailure: if the file cannot be opened, read or decoded
        """
        path = Path(path)
        try:
            text = path.read_text(encoding=self.config.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise IOFailure(f"Cannot read decision model file {path}: {e}", value=str(path)) from e
        return self._deserialize_text(text, name=path.name, source=str(path.resolve()))

    def deserialize_from_source(self, source) -> DecisionModel:
        """
        Deserialize from a path (str or os.PathLike) or a readable stream.

        Stream content is read once and buffered, so both passes see
        identical rows.
        """
        if isinstance(source, (str, os.PathLike)):
            return self.deserialize_from_file(source)
        if not hasattr(source, "read"):
            raise TypeError(f"Expected a path or a readable stream, got {type(source).__name__}")

        stream_name = getattr(source, "name", None)
        try:
            text = source.read()
            if isinstance(text, bytes):
                text = text.decode(self.config.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise IOFailure(f"Cannot read decision model stream: {e}", value=stream_name) from e

        if isinstance(stream_name, str):
            return self._deserialize_text(text, name=os.path.basename(stream_name), source=os.path.abspath(stream_name))
        return self._deserialize_text(text, name="DecisionModel", source="inline")

    def _deserialize_text(self, text: str, name: str, source: str) -> DecisionModel:
        records = read_records(text, self.config.delimiter)
        model = self.factory.create_model(name=name, source=source)

        logger.debug("Phase %s: %d records from %s", Phase.STRUCTURAL.value, len(records), source)
        self._structural_pass(model, records)

        logger.debug("Phase %s: resolving rules and visibility", Phase.RESOLUTION.value)
        self._resolution_pass(model, records)

        model.freeze()
        logger.info("Loaded decision model '%s' with %d decisions", name, model.size())
        return model

    def _structural_pass(self, model: DecisionModel, records: List[DecisionRecord]) -> None:
        for record in records:
            try:
                decision = self._build_decision(record)
                model.add(decision)
            except DecisionModelError as e:
                raise e.add_context(
                    decision_id=record.id.strip() or None, row=record.row, phase=Phase.STRUCTURAL.value
                )

    def _build_decision(self, record: DecisionRecord) -> Decision:
        decision_id = record.id.strip()
        if not decision_id:
            raise UnsupportedFormat("Decision id is blank", field="id")

        decision = self.factory.create_decision(record.type.strip(), decision_id)
        decision.question = record.question.strip()

        if record.range.strip():
            try:
                self._apply_range(decision, record.range)
            except DecisionModelError as e:
                raise e.add_context(field="range", value=record.range.strip())

        cardinality = record.cardinality.strip()
        if cardinality:
            try:
                self._apply_cardinality(decision, cardinality)
            except DecisionModelError as e:
                raise e.add_context(field="cardinality", value=cardinality)

        logger.debug("Built %s decision %s", decision.type.value, decision.id)
        return decision

    def _apply_range(self, decision: Decision, text: str) -> None:
        if decision.type is DecisionType.NUMBER:
            decision.set_range(self.factory.create_number_range(split_number_range(text)))
        elif decision.type is DecisionType.ENUM:
            decision.set_range(self.factory.create_enum_options(split_options(text)))
        elif decision.type in (DecisionType.BOOLEAN, DecisionType.STRING):
            options = split_options(text)
            if not self.config.strict_ranges:
                decision.set_range(self.factory.create_enum_options(options), lenient=True)
                return
            implicit = decision.capabilities.implicit_options
            if implicit and sorted(o.lower() for o in options) == sorted(implicit):
                # true|false on a boolean restates its fixed range
                return
            raise UnsupportedRangeOrCardinality(
                f"Range not supported for decision of type {decision.type.value}"
            )

    def _apply_cardinality(self, decision: Decision, text: str) -> None:
        values = split_cardinality(text)
        if not decision.capabilities.accepts_cardinality or len(values) != 2:
            raise UnsupportedRangeOrCardinality(CARDINALITY_NOT_SUPPORTED_ERROR.format(text, decision.type.value))
        if not all(_INTEGER.fullmatch(v) for v in values):
            raise UnsupportedRangeOrCardinality(f"Cardinality '{text}' is not a pair of integers")
        minimum, maximum = int(values[0]), int(values[1])
        decision.set_cardinality(self.factory.create_cardinality(minimum, maximum))

    def _resolution_pass(self, model: DecisionModel, records: List[DecisionRecord]) -> None:
        conditions = ConditionParser(model)
        rules_parser = RulesParser(model, conditions)

        for record in records:
            try:
                decision = model.require(record.id.strip())
                self._attach_rules(decision, record.rules, rules_parser)
                self._attach_visibility(decision, record.visibility, conditions)
            except DecisionModelError as e:
                raise e.add_context(decision_id=record.id.strip(), row=record.row, phase=Phase.RESOLUTION.value)

    def _attach_rules(self, decision: Decision, text: str, rules_parser: RulesParser) -> None:
        text = text.strip()
        if not text:
            return
        fragments = split_rule_clauses(text, self.config.rule_clause_split)
        try:
            rules = rules_parser.parse(decision, fragments)
        except DecisionModelError as e:
            raise e.add_context(field="rules", value=text)
        decision.add_rules(rules)
        logger.debug("Attached %d rule(s) to %s", len(rules), decision.id)

    def _attach_visibility(self, decision: Decision, text: str, conditions: ConditionParser) -> None:
        try:
            decision.visibility = conditions.parse(text)
        except DecisionModelError as e:
            raise e.add_context(field="visibility", value=text.strip())
