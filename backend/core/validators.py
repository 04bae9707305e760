import html
import re
from typing import Any

MAX_NAME_LENGTH = 255
MAX_STOCK = 1_000_000
MAX_THRESHOLD = 10_000
MAX_EMAIL_LENGTH = 254

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def sanitize_html(text: Any) -> str:
    """Escape <, >, &, ' and \" for interpolation into HTML email bodies."""
    return html.escape(str(text), quote=True).replace("&#x27;", "&#39;")


def validate_email(email: Any) -> bool:
    return isinstance(email, str) and len(email) <= MAX_EMAIL_LENGTH and bool(_EMAIL_RE.match(email))


def validate_item_name(name: Any) -> bool:
    return isinstance(name, str) and 0 < len(name) <= MAX_NAME_LENGTH


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_stock(stock: Any) -> bool:
    return _is_number(stock) and 0 <= stock < MAX_STOCK


def validate_threshold(threshold: Any) -> bool:
    return _is_number(threshold) and 0 <= threshold < MAX_THRESHOLD
