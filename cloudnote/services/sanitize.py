"""
Markup Sanitizer.

Basic XSS stripping for note content coming from the editor.
"""

import re

_SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_EVENT_HANDLER_ATTR = re.compile(r"""on\w+\s*=\s*["'][^"']*["']""", re.IGNORECASE)
_DANGEROUS_PROTOCOL = re.compile(r"javascript:|data:text/html", re.IGNORECASE)


def sanitize_html(markup: str | None) -> str:
    """Remove script blocks, inline on*= handlers and javascript:/data:text/html URLs."""
    if not markup:
        return ""
    clean = _SCRIPT_BLOCK.sub("", markup)
    clean = _EVENT_HANDLER_ATTR.sub("", clean)
    return _DANGEROUS_PROTOCOL.sub("", clean)
