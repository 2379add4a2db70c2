"""Regex-based HTML normalization applied before classification and parsing."""

import html as html_lib
import re

SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE | re.MULTILINE)
STYLE_RE = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE | re.MULTILINE)
COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
WHITESPACE_RE = re.compile(r"\s+")
BETWEEN_TAGS_RE = re.compile(r">\s+<")

TRUNCATION_MARKER = "... [truncated]"


def clean(html: str, max_length: int | None = None) -> str:
    """Remove scripts/styles, decode entities, collapse whitespace, truncate."""
    html = SCRIPT_RE.sub("", html)
    html = STYLE_RE.sub("", html)
    html = html_lib.unescape(html)
    html = WHITESPACE_RE.sub(" ", html).strip()
    return truncate(html, max_length)


def minify(html: str, max_length: int | None = None) -> str:
    """Drop comments and whitespace between tags on top of clean()."""
    html = COMMENT_RE.sub("", html)
    html = clean(html)
    html = BETWEEN_TAGS_RE.sub("><", html)
    return truncate(html, max_length)


def truncate(html: str, max_length: int | None = None) -> str:
    if max_length is not None and len(html) > max_length:
        return html[:max_length] + TRUNCATION_MARKER
    return html
