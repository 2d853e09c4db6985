import html
import re
from typing import Optional

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_string(value: Optional[str], blank_as_none: bool = False) -> Optional[str]:
    """
    Strip, drop control characters and HTML-escape free text before it is stored.

    With blank_as_none, whitespace-only input clears the field instead of
    storing an empty string.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    value = CONTROL_CHARS.sub("", value).strip()
    if blank_as_none and not value:
        return None
    return html.escape(value, quote=True)
