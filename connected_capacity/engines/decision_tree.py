# connected_capacity/engines/decision_tree.py
"""
Decision Tree Engine
--------------------
Interprets JSON decision trees (one file per algorithm under
``<RULES_DIR>/algorithms``).

Tree document:
    name, version, output_range [min, max], tree          (required)
    computed_inputs {name: formula | {"formula": ...}}    (optional)
    output_type, verification_status, description, source (optional)

A node is either a leaf ``{"return": value}`` or a branch
``{"condition": expr, "true_branch": node, "false_branch": node}``.

Expression precedence (loosest first):
    a + b            top-level sum, booleans count as 1/0
    c ? a : b        ternary
    a || b           short-circuit OR
    a && b           short-circuit AND
    VAR op value     == != >= <= > <   (missing VAR is 0)
    ( expr )         group
    literal          true / false / number / variable (missing is 0)
"""
import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import structlog

from connected_capacity.core.exceptions import (
    ExpressionException,
    RuleNotFoundException,
    RuleValidationException,
)

logger = structlog.get_logger(__name__)

RULE_TYPE = "algorithm"

_REQUIRED_FIELDS = ("name", "version", "output_range", "tree")
_COMPARISON_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s*(==|!=|>=|<=|>|<)\s*(.+)$")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_GROUP_RE = re.compile(r"^\((.+)\)$", re.DOTALL)


@dataclass
class DecisionResult:
    """Output of DecisionTreeEngine.evaluate_detailed()."""
    algorithm: str
    value: Any
    path: List[Tuple[str, bool]] = field(default_factory=list)  # (condition, outcome)
    computed: Dict[str, Any] = field(default_factory=dict)


class DecisionTreeEngine:
    """Evaluate JSON decision-tree algorithms against assessment input."""

    def __init__(self, algorithms_path: Optional[Path] = None):
        if algorithms_path is None:
            from connected_capacity.config import settings
            algorithms_path = settings.algorithms_dir
        self.algorithms_path = Path(algorithms_path)
        self._loaded: Dict[str, dict] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, name: str) -> dict:
        """Load, validate and cache an algorithm definition."""
        if name in self._loaded:
            return self._loaded[name]

        file_path = self.algorithms_path / f"{name}.json"
        if not file_path.is_file():
            raise RuleNotFoundException(RULE_TYPE, name)

        try:
            definition = json.loads(file_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise RuleValidationException(RULE_TYPE, name, f"invalid JSON: {e.msg}") from e

        self.validate(definition, name)
        self._loaded[name] = definition
        return definition

    def validate(self, definition: Any, name: str = "") -> bool:
        """Validate document structure; raises RuleValidationException."""
        if not isinstance(definition, dict):
            raise RuleValidationException(RULE_TYPE, name, "definition must be an object")

        for key in _REQUIRED_FIELDS:
            if definition.get(key) is None:
                raise RuleValidationException(RULE_TYPE, name, f"missing required field: {key}")

        output_range = definition["output_range"]
        if not isinstance(output_range, list) or len(output_range) != 2:
            raise RuleValidationException(RULE_TYPE, name, "output_range must be [min, max]")

        self._validate_node(definition["tree"], name)
        return True

    def _validate_node(self, node: Any, name: str) -> None:
        if not isinstance(node, dict):
            raise RuleValidationException(RULE_TYPE, name, "tree node must be an object")

        if node.get("return") is not None:
            return

        for key in ("condition", "true_branch", "false_branch"):
            if node.get(key) is None:
                raise RuleValidationException(RULE_TYPE, name, f"branch node must have '{key}'")

        self._validate_node(node["true_branch"], name)
        self._validate_node(node["false_branch"], name)

    def clear_cache(self) -> None:
        self._loaded.clear()

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, name: str, input_data: Dict[str, Any]) -> Any:
        """Evaluate an algorithm and return the leaf value."""
        return self.evaluate_detailed(name, input_data).value

    def evaluate_detailed(self, name: str, input_data: Dict[str, Any]) -> DecisionResult:
        """Evaluate an algorithm, recording computed inputs and the branch path."""
        algorithm = self.load(name)

        computed = self._compute_inputs(algorithm.get("computed_inputs") or {}, input_data)
        context = {**input_data, **computed}

        path: List[Tuple[str, bool]] = []
        node = algorithm["tree"]
        while node.get("return") is None:
            outcome = bool(self.evaluate_expression(node["condition"], context))
            path.append((node["condition"], outcome))
            node = node["true_branch"] if outcome else node["false_branch"]

        value = node["return"]
        logger.debug(
            "algorithm_evaluated",
            algorithm=name,
            value=value,
            depth=len(path),
        )
        return DecisionResult(algorithm=name, value=value, path=path, computed=computed)

    def _compute_inputs(self, computed_inputs: Dict[str, Any], input_data: Dict[str, Any]) -> Dict[str, Any]:
        computed: Dict[str, Any] = {}
        for var_name, definition in computed_inputs.items():
            formula = definition.get("formula") if isinstance(definition, dict) else definition
            if not isinstance(formula, str):
                raise ExpressionException(str(formula), f"computed input '{var_name}' has no formula")
            computed[var_name] = self.evaluate_expression(formula, {**input_data, **computed})
        return computed

    def evaluate_expression(self, expression: str, context: Dict[str, Any]) -> Any:
        """Evaluate one expression string against a variable context."""
        expression = expression.strip()
        if not expression:
            raise ExpressionException(expression, "empty expression")

        parts = _split_outside_parens(expression, "+")
        if len(parts) > 1:
            return sum(_as_number(self.evaluate_expression(p, context)) for p in parts if p.strip())

        ternary = _parse_ternary(expression)
        if ternary:
            condition, when_true, when_false = ternary
            if self.evaluate_expression(condition, context):
                return self.evaluate_expression(when_true, context)
            return self.evaluate_expression(when_false, context)

        parts = _split_outside_parens(expression, "||")
        if len(parts) > 1:
            return any(self.evaluate_expression(p, context) for p in parts)

        parts = _split_outside_parens(expression, "&&")
        if len(parts) > 1:
            return all(self.evaluate_expression(p, context) for p in parts)

        match = _COMPARISON_RE.match(expression)
        if match:
            var_name, operator, raw_value = match.groups()
            left = _lookup(context, var_name)
            right = _parse_value(raw_value.strip(), context)
            return _compare(left, operator, right, expression)

        match = _GROUP_RE.match(expression)
        if match:
            return self.evaluate_expression(match.group(1), context)

        return _parse_value(expression, context)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def get_algorithm_meta(self, name: str) -> Dict[str, Any]:
        algorithm = self.load(name)
        return {
            "name": algorithm.get("name", name),
            "version": algorithm.get("version", "unknown"),
            "verification_status": algorithm.get("verification_status", "unverified"),
            "verification_source": algorithm.get("verification_source"),
            "output_range": algorithm.get("output_range", [0, 1]),
            "output_type": algorithm.get("output_type", "integer"),
            "description": algorithm.get("description", ""),
            "items_used": algorithm.get("items_used", []),
        }

    def available_algorithms(self) -> Dict[str, Dict[str, Any]]:
        """Metadata for every algorithm file that loads cleanly."""
        algorithms: Dict[str, Dict[str, Any]] = {}
        if not self.algorithms_path.is_dir():
            return algorithms

        for file_path in sorted(self.algorithms_path.glob("*.json")):
            name = file_path.stem
            try:
                algorithms[name] = self.get_algorithm_meta(name)
            except (RuleNotFoundException, RuleValidationException) as e:
                logger.warning("algorithm_load_failed", algorithm=name, error=str(e))
        return algorithms


# ----------------------------------------------------------------------
# Expression helpers
# ----------------------------------------------------------------------

def _split_outside_parens(expression: str, operator: str) -> List[str]:
    """Split on operator occurrences at parenthesis depth 0."""
    parts: List[str] = []
    current: List[str] = []
    depth = 0
    i = 0
    op_len = len(operator)

    while i < len(expression):
        char = expression[i]
        if char == "(":
            depth += 1
            current.append(char)
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise ExpressionException(expression, "unbalanced parentheses")
            current.append(char)
        elif depth == 0 and expression.startswith(operator, i):
            parts.append("".join(current))
            current = []
            i += op_len
            continue
        else:
            current.append(char)
        i += 1

    if depth != 0:
        raise ExpressionException(expression, "unbalanced parentheses")

    if current:
        parts.append("".join(current))
    return [p.strip() for p in parts] if len(parts) > 1 else [expression]


def _parse_ternary(expression: str) -> Optional[Tuple[str, str, str]]:
    depth = 0
    question = colon = None
    for i, char in enumerate(expression):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif depth == 0 and char == "?" and question is None:
            question = i
        elif depth == 0 and char == ":" and question is not None and colon is None:
            colon = i

    if question is None or colon is None:
        return None
    return (
        expression[:question].strip(),
        expression[question + 1:colon].strip(),
        expression[colon + 1:].strip(),
    )


def _lookup(context: Dict[str, Any], name: str) -> Any:
    value = context.get(name)
    return 0 if value is None else value


def _parse_value(value: str, context: Dict[str, Any]) -> Any:
    if value == "true":
        return True
    if value == "false":
        return False
    if _NUMBER_RE.match(value):
        return float(value) if any(c in value for c in ".eE") else int(value)
    if _IDENTIFIER_RE.match(value):
        return _lookup(context, value)
    return 0


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


def _compare(left: Any, operator: str, right: Any, expression: str = "") -> bool:
    """Compare with numeric coercion; text that is not numeric only matches on ==/!=."""
    if isinstance(left, str) or isinstance(right, str):
        try:
            left, right = float(left), float(right)
        except (TypeError, ValueError):
            if operator == "==":
                return str(left) == str(right)
            if operator == "!=":
                return str(left) != str(right)
            return False

    if operator == "==":
        return left == right
    if operator == "!=":
        return left != right
    try:
        if operator == ">=":
            return left >= right
        if operator == "<=":
            return left <= right
        if operator == ">":
            return left > right
        if operator == "<":
            return left < right
    except TypeError as e:
        raise ExpressionException(
            expression, f"cannot compare {type(left).__name__} {operator} {type(right).__name__}"
        ) from e
    return False
