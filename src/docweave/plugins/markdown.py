"""Renders markdown bodies to HTML with the ``markdown`` library."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

import markdown

from docweave import markup
from docweave.plugins import register_plugin
from docweave.types import Heading

if TYPE_CHECKING:
    from docweave.context import BuildContext
    from docweave.types import DocSourceFile

__all__ = ["MarkdownPlugin", "render_markdown"]

_EXTENSIONS = ["tables", "fenced_code", "toc", "attr_list"]
_MD_LINK_RE = re.compile(r'href="(?!https?://)([^"#]+)\.md(#[^"]*)?"')
_MAX_HEADING_LEVEL = 3


def _flatten_toc(tokens: list[dict[str, Any]], max_level: int) -> list[Heading]:
    headings = list[Heading]()
    for token in tokens:
        level = int(token["level"])
        if level <= max_level:
            headings.append({"id": str(token["id"]), "name": str(token["name"]), "level": level})
        headings.extend(_flatten_toc(token.get("children", []), max_level))
    return headings


def render_markdown(text: str, *, max_level: int = _MAX_HEADING_LEVEL) -> tuple[str, list[Heading]]:
    """Render markdown to HTML; returns the HTML and its headings up to max_level."""
    md = markdown.Markdown(extensions=_EXTENSIONS)
    html = md.convert(text)
    # Links between pages point at the compiled .html
    html = _MD_LINK_RE.sub(lambda m: f'href="{m.group(1)}.html{m.group(2) or ""}"', html)
    toc_tokens: list[dict[str, Any]] = getattr(md, "toc_tokens", [])
    return html, _flatten_toc(toc_tokens, max_level)


@register_plugin("markdown")
class MarkdownPlugin:
    """Fills ``html`` and ``headings`` of every compiled doc."""

    def apply(self, context: BuildContext) -> None:
        context.hooks.doc_compile.tap("markdown", self._compile_doc)

    def _compile_doc(self, doc: DocSourceFile) -> None:
        doc.html, doc.headings = render_markdown(doc.body)
        if not doc.title:
            doc.title = markup.first_heading(doc.body) or ""
