"""Rule-based payload validator.

Fields are validated in rule-map order. Validation of a field stops at
its first failing rule, and every field is validated (no early exit), so
callers get all field errors at once.
"""

from collections.abc import Mapping
from typing import Any

from persona.validation.messages import DEFAULT_TEMPLATE, interpolate, resolve_message
from persona.validation.presence import PresenceVerifier
from persona.validation.rules import (
    IMPLICIT_RULES,
    RULES,
    Rule,
    RuleContext,
    is_empty,
    parse_rules,
)


class Validation:
    """Outcome of a validation run.

    Attributes:
        errors: ``{"field", "validation", "message"}`` dicts in field order.
    """

    def __init__(self, errors: list[dict[str, str]]) -> None:
        self.errors = errors

    def fails(self) -> bool:
        return bool(self.errors)

    def passes(self) -> bool:
        return not self.errors

    def messages(self) -> list[dict[str, str]]:
        return list(self.errors)


class Validator:
    """Validates payloads against rule maps.

    Args:
        presence: Presence verifier used by ``unique`` rules. Optional when
            no rule map references a table.
    """

    def __init__(self, presence: PresenceVerifier | None = None) -> None:
        self.presence = presence

    async def validate_all(
        self,
        payload: Mapping[str, Any],
        rules: Mapping[str, str],
        messages: Mapping[str, str] | None = None,
    ) -> Validation:
        """Validate every field of ``payload`` declared in ``rules``.

        Args:
            payload: Input data.
            rules: Rule expressions keyed by field, in validation order.
            messages: Custom messages keyed by ``"field.validation"`` or
                ``"validation"``.

        Returns:
            Validation outcome.

        Raises:
            ValueError: If a rule name is unknown.
        """
        messages = messages or {}
        errors: list[dict[str, str]] = []

        for field, expression in rules.items():
            value = payload.get(field)
            context = RuleContext(field=field, payload=payload, presence=self.presence)
            for rule in parse_rules(expression):
                check = RULES.get(rule.name)
                if check is None:
                    msg = f"Unknown validation rule: {rule.name}"
                    raise ValueError(msg)
                if rule.name not in IMPLICIT_RULES and is_empty(value):
                    continue
                if not await check(value, rule, context):
                    errors.append(
                        {
                            "message": self._message(messages, field, rule, value),
                            "field": field,
                            "validation": rule.name,
                        }
                    )
                    break

        return Validation(errors)

    @staticmethod
    def _message(
        messages: Mapping[str, str], field: str, rule: Rule, value: Any
    ) -> str:
        data = {
            "field": field,
            "validation": rule.name,
            "value": value,
            "argument": ",".join(rule.args),
        }
        default = interpolate(messages.get(rule.name) or DEFAULT_TEMPLATE, data)
        return resolve_message(messages, f"{field}.{rule.name}", data, default)
