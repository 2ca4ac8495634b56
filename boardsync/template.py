"""Card content rendering: {{Token}} templates or caller functions."""
import re
from typing import Any, Optional

from .schema import Record, RenderHook

TOKEN_RE = re.compile(r"\{\{\s*([^{}\s]+)\s*\}\}")


def fill_template(template: str, record: Record) -> str:
    """Replace {{Field}} tokens with the record's values. Unknown fields render empty."""
    def _sub(match):
        value = record.get(match.group(1))
        return "" if value is None else str(value)
    return TOKEN_RE.sub(_sub, template or "")


def render_card(hook: RenderHook, record: Record, existing: Optional[str] = None) -> str:
    """Produce the content for one card."""
    if hook.kind == "render_fn":
        content: Any = hook.render_fn(record, existing)
        return "" if content is None else str(content)
    return fill_template(hook.template, record)
