"""Variable interpolation in stack documents.

Supports $VAR, ${VAR}, ${VAR:-default}, ${VAR-default}, ${VAR:+value},
${VAR+value}, ${VAR:?message}, ${VAR?message} and $$ for a literal dollar.
"""

import logging
import re
from typing import Any, Dict

from convoy.errors import StackDocumentError


logger = logging.getLogger(__name__)

_PATTERN = re.compile(
    r"""
    \$(?:
        (?P<escaped>\$)
      | (?P<named>[_a-zA-Z][_a-zA-Z0-9]*)
      | \{(?P<braced>[_a-zA-Z][_a-zA-Z0-9]*)(?:(?P<op>:?[-+?])(?P<arg>[^}]*))?\}
      | (?P<invalid>)
    )
    """,
    re.VERBOSE,
)


def interpolate(template: str, context: Dict[str, str]) -> str:
    """Substitute variables in one string."""

    def replace(match: re.Match) -> str:
        if match.group("escaped") is not None:
            return "$"
        if match.group("invalid") is not None:
            raise StackDocumentError(f"invalid interpolation format in {template!r}")

        name = match.group("named") or match.group("braced")
        op = match.group("op")
        arg = match.group("arg") or ""
        value = context.get(name)

        if op is None:
            if value is None:
                logger.warning(f"The {name} variable is not set, defaulting to a blank string")
                return ""
            return value

        # The colon forms treat an empty value like an unset one
        is_set = bool(value) if op.startswith(":") else value is not None
        kind = op[-1]
        if kind == "-":
            return value if is_set else arg
        if kind == "+":
            return arg if is_set else ""
        if not is_set:
            raise StackDocumentError(f"required variable {name} is missing a value: {arg}")
        return value

    return _PATTERN.sub(replace, template)


def interpolate_tree(node: Any, context: Dict[str, str]) -> Any:
    """Substitute variables in every string value of a parsed document."""
    if isinstance(node, dict):
        return {key: interpolate_tree(value, context) for key, value in node.items()}
    if isinstance(node, list):
        return [interpolate_tree(item, context) for item in node]
    if isinstance(node, str):
        return interpolate(node, context)
    return node
