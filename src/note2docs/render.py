"""Default markdown renderer built on markdown-it-py.

Produces the markup a vault renderer emits for callouts (``> [!type] title``)
and internal links (``[[target|label]]``) so the cleanup stage can rewrite it.
"""

from __future__ import annotations

import html
import re
from typing import Any, Dict, Optional

from markdown_it import MarkdownIt

CALLOUT_HEAD_RE = re.compile(r"^\[!([A-Za-z][\w-]*)\][+-]?[ \t]*([^\n]*)(?:\n([\s\S]*))?$")
WIKILINK_RE = re.compile(r"\[\[([^\]|\n]+?)(?:\|([^\]\n]*))?\]\]")


def _wikilink_rule(state: Any, silent: bool) -> bool:
    if not state.src.startswith("[[", state.pos):
        return False
    match = WIKILINK_RE.match(state.src, state.pos, state.posMax)
    if match is None:
        return False
    if not silent:
        token = state.push("wikilink", "a", 0)
        target = match.group(1).strip()
        token.meta = {"target": target, "label": (match.group(2) or "").strip() or target}
    state.pos = match.end()
    return True


def _render_wikilink(tokens, idx, options, env) -> str:
    meta = tokens[idx].meta
    target = html.escape(meta["target"], quote=True)
    return f'<a data-href="{target}" href="{target}" class="internal-link">{html.escape(meta["label"])}</a>'


def _callout_rule(state: Any) -> None:
    tokens = state.tokens
    for i, token in enumerate(tokens):
        if token.type != "blockquote_open" or i + 3 >= len(tokens):
            continue
        para_open, inline, para_close = tokens[i + 1], tokens[i + 2], tokens[i + 3]
        if para_open.type != "paragraph_open" or inline.type != "inline":
            continue
        match = CALLOUT_HEAD_RE.match(inline.content)
        if match is None:
            continue
        callout_type = match.group(1).lower()
        title = match.group(2).strip() or callout_type.capitalize()
        rest = (match.group(3) or "").strip()
        inline.content = rest
        if not rest:
            para_open.hidden = True
            para_close.hidden = True

        token.meta = dict(token.meta or {}, callout=callout_type, title=title)
        depth = 0
        for closing in tokens[i + 1 :]:
            if closing.type == "blockquote_open":
                depth += 1
            elif closing.type == "blockquote_close":
                if depth == 0:
                    closing.meta = dict(closing.meta or {}, callout=callout_type)
                    break
                depth -= 1


class MarkdownRenderer:
    """``render(markdown, source_path) -> html`` collaborator."""

    def __init__(self, options: Optional[Dict[str, Any]] = None) -> None:
        md_options = {"html": True}
        md_options.update(options or {})
        self._md = MarkdownIt("commonmark", md_options).enable("table").enable("strikethrough")
        self._md.inline.ruler.before("link", "wikilink", _wikilink_rule)
        self._md.core.ruler.after("block", "callouts", _callout_rule)

        default_render_token = self._md.renderer.renderToken

        def blockquote_open(tokens, idx, options, env):
            meta = tokens[idx].meta or {}
            if "callout" not in meta:
                return default_render_token(tokens, idx, options, env)
            callout = html.escape(meta["callout"], quote=True)
            return (
                f'<div data-callout="{callout}" class="callout">\n'
                f'<div class="callout-title">{html.escape(meta["title"])}</div>\n'
                '<div class="callout-content">\n'
            )

        def blockquote_close(tokens, idx, options, env):
            if "callout" not in (tokens[idx].meta or {}):
                return default_render_token(tokens, idx, options, env)
            return "</div>\n</div>\n"

        self._md.renderer.rules["blockquote_open"] = blockquote_open
        self._md.renderer.rules["blockquote_close"] = blockquote_close
        self._md.renderer.rules["wikilink"] = _render_wikilink

    def __call__(self, markdown: str, source_path: str = "") -> str:
        return self._md.render(markdown, {"source_path": source_path})
