"""
Message template rendering.
"""

import re
from collections.abc import Mapping
from typing import Any

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def format_template(template: str, variables: Mapping[str, Any]) -> str:
    """
    Substitute ``{{key}}`` placeholders with values from `variables`.

    Placeholders without a matching key are left as they are.
    """

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in variables:
            return match.group(0)
        value = variables[key]
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(_replace, template)
