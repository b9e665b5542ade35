"""Validation message templates.

Templates use ``{{ placeholder }}`` interpolation; unknown placeholders
render as an empty string.
"""

import re
from collections.abc import Mapping
from typing import Any

_PLACEHOLDER = re.compile(r"{{\s?(\w+)\s?}}")

DEFAULT_TEMPLATE = "{{ validation }} validation failed on {{ field }}"


def interpolate(template: str, data: Mapping[str, Any]) -> str:
    """Replace ``{{ key }}`` placeholders with values from ``data``."""

    def _replace(match: re.Match[str]) -> str:
        value = data.get(match.group(1))
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(_replace, template)


def resolve_message(
    messages: Mapping[str, str],
    key: str,
    data: Mapping[str, Any],
    default: str,
) -> str:
    """Return the custom message for ``key`` interpolated, else ``default``.

    Args:
        messages: Custom messages keyed by ``"field.validation"``.
        key: Lookup key, e.g. ``"uid.exists"``.
        data: Placeholder values.
        default: Message used when no custom message is defined.
    """
    template = messages.get(key)
    if not template:
        return default
    return interpolate(template, data)
