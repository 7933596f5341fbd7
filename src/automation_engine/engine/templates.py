"""
Placeholder substitution for node configuration.
"""

import re
from typing import Any, Mapping

from .conditions import MISSING, resolve_path, to_text

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+(?:\.\w+)*)\s*\}\}")


def interpolate(template: str, context: Mapping[str, Any]) -> str:
    """
    Replace {{path.to.field}} tokens with values from the context.

    Tokens whose path does not resolve are left verbatim so unknown
    placeholders survive for later inspection.

    Args:
        template: Text containing placeholders
        context: Execution data context

    Returns:
        Interpolated text
    """
    def replace(match: re.Match) -> str:
        value = resolve_path(context, match.group(1))
        if value is MISSING:
            return match.group(0)
        return to_text(value)

    return _PLACEHOLDER.sub(replace, template)


def interpolate_value(value: Any, context: Mapping[str, Any]) -> Any:
    """Interpolate every string inside nested dicts and lists."""
    if isinstance(value, str):
        return interpolate(value, context)
    if isinstance(value, dict):
        return {k: interpolate_value(v, context) for k, v in value.items()}
    if isinstance(value, list):
        return [interpolate_value(v, context) for v in value]
    return value
