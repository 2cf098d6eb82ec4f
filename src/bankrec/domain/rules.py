"""Categorization rule service.

A rule is an ordered list of conditions over a transaction's fields plus a
category to assign. ``match_transaction`` returns the highest-priority
active rule whose conditions all hold.
"""

import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from bankrec.database.base import Database
from bankrec.domain.entities import Rule as RuleEntity, RuleCondition
from bankrec.domain.errors import NotFoundError, ValidationError, category_not_found

logger = logging.getLogger(__name__)

CONDITION_FIELDS = ("description", "amount", "date", "type")
CONDITION_OPERATORS = (
    "equals",
    "not_equals",
    "contains",
    "not_contains",
    "starts_with",
    "ends_with",
    "greater_than",
    "less_than",
    "between",
    "regex",
)
_ORDERED_OPERATORS = ("greater_than", "less_than", "between")


def transaction_fields(txn_date: date, amount: Decimal, description: str) -> dict[str, Any]:
    """Field values a rule condition can test for one transaction."""
    return {
        "description": description or "",
        "amount": amount,
        "date": txn_date,
        "type": "income" if amount > 0 else "expense",
    }


def _ordered(field: str, value: Any) -> Any:
    """Coerce a value for <, > and between comparisons."""
    if field == "date":
        if isinstance(value, date):
            return value
        return date.fromisoformat(str(value))
    return Decimal(str(value))


def _text(value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def evaluate_condition(condition: RuleCondition, fields: Mapping[str, Any]) -> bool:
    """Test a single condition against transaction fields."""
    actual = fields.get(condition.field)
    if actual is None:
        return False

    operator = condition.operator
    if operator in _ORDERED_OPERATORS:
        try:
            current = _ordered(condition.field, actual)
            if operator == "between":
                low, high = (_ordered(condition.field, v) for v in condition.value)
                return low <= current <= high
            target = _ordered(condition.field, condition.value)
        except (ValueError, TypeError, InvalidOperation):
            return False
        return current > target if operator == "greater_than" else current < target

    if operator == "regex":
        flags = 0 if condition.case_sensitive else re.IGNORECASE
        return re.search(str(condition.value), _text(actual), flags) is not None

    if condition.field == "amount" and operator in ("equals", "not_equals"):
        try:
            equal = Decimal(str(actual)) == Decimal(str(condition.value))
        except InvalidOperation:
            equal = False
        return equal if operator == "equals" else not equal

    actual_text = _text(actual)
    target_text = _text(condition.value)
    if not condition.case_sensitive:
        actual_text = actual_text.lower()
        target_text = target_text.lower()

    if operator == "equals":
        return actual_text == target_text
    if operator == "not_equals":
        return actual_text != target_text
    if operator == "contains":
        return target_text in actual_text
    if operator == "not_contains":
        return target_text not in actual_text
    if operator == "starts_with":
        return actual_text.startswith(target_text)
    if operator == "ends_with":
        return actual_text.endswith(target_text)
    return False


def evaluate_conditions(conditions: list[RuleCondition], fields: Mapping[str, Any]) -> bool:
    """True when every condition holds (an empty list never matches)."""
    if not conditions:
        return False
    return all(evaluate_condition(condition, fields) for condition in conditions)


def parse_condition(raw: Mapping[str, Any]) -> RuleCondition:
    """Validate one condition given as a mapping.

    Raises:
        ValidationError: If the field, operator or value is invalid
    """
    if not isinstance(raw, Mapping):
        raise ValidationError("Each rule condition must be a mapping")

    field = raw.get("field")
    operator = raw.get("operator")
    value = raw.get("value")
    case_sensitive = raw.get("case_sensitive", raw.get("caseSensitive", False))

    if field not in CONDITION_FIELDS:
        raise ValidationError(f"Invalid condition field '{field}'. Must be one of: {', '.join(CONDITION_FIELDS)}")
    if operator not in CONDITION_OPERATORS:
        raise ValidationError(f"Invalid condition operator '{operator}'")
    if value is None:
        raise ValidationError(f"Condition on '{field}' needs a value")
    if not isinstance(case_sensitive, bool):
        raise ValidationError("case_sensitive must be true or false")

    if operator == "between":
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise ValidationError("'between' needs a two-element [low, high] value")
        value = list(value)
    if operator in _ORDERED_OPERATORS:
        if field not in ("amount", "date"):
            raise ValidationError(f"Operator '{operator}' only applies to amount or date")
        try:
            for item in value if operator == "between" else [value]:
                _ordered(field, item)
        except (ValueError, TypeError, InvalidOperation):
            raise ValidationError(f"Invalid {field} value {value!r} for operator '{operator}'")
    if operator == "regex":
        try:
            re.compile(str(value))
        except re.error as e:
            raise ValidationError(f"Invalid regular expression {value!r}: {e}")

    return RuleCondition(field=field, operator=operator, value=value, case_sensitive=case_sensitive)


class RuleService:
    """Service for categorization rules."""

    def __init__(self, db: Database):
        """Initialize rule service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_rule(
        self,
        user_id: int,
        name: str,
        conditions: list[Mapping[str, Any]],
        action_category_id: Optional[int] = None,
        priority: int = 0,
        is_active: bool = True,
    ) -> int:
        """Create a rule.

        Args:
            user_id: Owning user
            name: Rule name
            conditions: Condition mappings (field, operator, value, case_sensitive)
            action_category_id: Category assigned when the rule matches
            priority: Higher priorities are evaluated first
            is_active: Inactive rules are never matched

        Returns:
            Rule ID

        Raises:
            ValidationError: If the name or a condition is invalid
            NotFoundError: If the category does not exist
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Rule name is required")
        if not conditions:
            raise ValidationError("A rule needs at least one condition")

        parsed = [parse_condition(raw) for raw in conditions]
        if action_category_id is not None:
            category = self.db.get_category(action_category_id)
            if category is None or category.user_id != user_id:
                raise NotFoundError(category_not_found(action_category_id))

        return self.db.create_rule(
            user_id=user_id,
            name=name,
            conditions=[
                {
                    "field": c.field,
                    "operator": c.operator,
                    "value": c.value,
                    "case_sensitive": c.case_sensitive,
                }
                for c in parsed
            ],
            action_category_id=action_category_id,
            priority=priority,
            is_active=is_active,
        )

    def list_rules(self, user_id: int, active_only: bool = False) -> list[RuleEntity]:
        """List a user's rules, highest priority first."""
        return self.db.list_rules(user_id, active_only=active_only)

    def match_transaction(self, user_id: int, fields: Mapping[str, Any]) -> Optional[RuleEntity]:
        """Find the first active rule whose conditions all match.

        Args:
            user_id: Owner of the rules
            fields: Transaction fields (see ``transaction_fields``)

        Returns:
            The matching rule, or None
        """
        for rule in self.db.list_rules(user_id, active_only=True):
            if evaluate_conditions(rule.conditions, fields):
                logger.debug("Rule %s (%s) matched", rule.id, rule.name)
                return rule
        return None
