"""Validation rules.

A rule map is ``{field: "rule|rule:arg1,arg2"}``. Each rule receives the
field value and returns True when it passes. Every rule except
``required`` skips empty values.
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

if TYPE_CHECKING:
    from persona.validation.presence import PresenceVerifier

_EMAIL_ADAPTER: TypeAdapter[str] = TypeAdapter(EmailStr)


@dataclass(frozen=True)
class Rule:
    """Parsed rule, e.g. ``unique:users,email`` -> ("unique", ("users", "email"))."""

    name: str
    args: tuple[str, ...] = ()


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule needs besides the field value."""

    field: str
    payload: Mapping[str, Any]
    presence: "PresenceVerifier | None"


RuleCheck = Callable[[Any, Rule, RuleContext], Awaitable[bool]]


def parse_rules(expression: str) -> list[Rule]:
    """Parse a pipe-separated rule expression.

    Args:
        expression: E.g. ``"required|email|unique:users,email"``.

    Returns:
        Rules in declaration order.
    """
    rules: list[Rule] = []
    for part in expression.split("|"):
        part = part.strip()
        if not part:
            continue
        name, _, raw_args = part.partition(":")
        args = tuple(arg.strip() for arg in raw_args.split(",")) if raw_args else ()
        rules.append(Rule(name=name.strip(), args=args))
    return rules


def is_empty(value: Any) -> bool:
    """None, blank strings and empty collections count as empty."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, list | tuple | set | dict):
        return not value
    return False


async def _required(value: Any, rule: Rule, ctx: RuleContext) -> bool:
    return not is_empty(value)


async def _email(value: Any, rule: Rule, ctx: RuleContext) -> bool:
    if not isinstance(value, str):
        return False
    try:
        _EMAIL_ADAPTER.validate_python(value)
    except PydanticValidationError:
        return False
    return True


async def _confirmed(value: Any, rule: Rule, ctx: RuleContext) -> bool:
    return ctx.payload.get(f"{ctx.field}_confirmation") == value


async def _unique(value: Any, rule: Rule, ctx: RuleContext) -> bool:
    if not rule.args or not rule.args[0]:
        msg = "unique rule needs a table: unique:table[,column[,ignore_column,ignore_value]]"
        raise ValueError(msg)
    if ctx.presence is None:
        msg = "unique rule needs a presence verifier"
        raise ValueError(msg)

    table = rule.args[0]
    column = rule.args[1] if len(rule.args) > 1 and rule.args[1] else ctx.field
    exclude_column = rule.args[2] if len(rule.args) > 2 else None
    exclude_value = rule.args[3] if len(rule.args) > 3 else None

    matches = await ctx.presence.count(
        table,
        column,
        value,
        exclude_column=exclude_column,
        exclude_value=exclude_value,
    )
    return matches == 0


RULES: dict[str, RuleCheck] = {
    "required": _required,
    "email": _email,
    "confirmed": _confirmed,
    "unique": _unique,
}

# Rules that still run when the value is empty
IMPLICIT_RULES: frozenset[str] = frozenset({"required"})
