"""Lightweight Markdown to HTML conversion for article bodies.

Covers what the seeded articles use: fenced code, inline code, ATX headings,
``- `` bullet lists and blank-line separated paragraphs. Everything else is
escaped text.
"""

import html
import re

_FENCE_RE = re.compile(r"```([\s\S]*?)```")
_INLINE_CODE_RE = re.compile(r"`([^`]+)`")
_HEADING_RE = re.compile(r"^(#{1,6})\s*(.*)$", re.MULTILINE)
_LIST_RE = re.compile(r"(?:^|\n)(- .+(?:\n- .+)*)")
_PLACEHOLDER_RE = re.compile(r"@@CODEBLOCK(\d+)@@")
_BLOCK_TAG_RE = re.compile(r"^(</?(h\d|ul|pre|blockquote)|@@CODEBLOCK\d+@@$)")


def _escape(text: str) -> str:
    return html.escape(text, quote=False)


def markdown_to_html(md: str) -> str:
    if not md:
        return ""

    code_blocks = []

    def stash(match):
        code_blocks.append(match.group(1))
        return f"@@CODEBLOCK{len(code_blocks) - 1}@@"

    md = _FENCE_RE.sub(stash, md)
    md = _escape(md)
    md = _INLINE_CODE_RE.sub(r"<code>\1</code>", md)
    md = _HEADING_RE.sub(lambda m: f"<h{len(m.group(1))}>{m.group(2)}</h{len(m.group(1))}>", md)

    def render_list(match):
        items = [re.sub(r"^- +", "", line).strip() for line in match.group(1).split("\n")]
        return "\n<ul>" + "".join(f"<li>{item}</li>" for item in items) + "</ul>\n"

    md = _LIST_RE.sub(render_list, md)

    parts = []
    for block in re.split(r"\n{2,}", md):
        block = block.strip()
        if not block:
            continue
        if _BLOCK_TAG_RE.match(block):
            parts.append(block)
        else:
            parts.append("<p>" + block.replace("\n", "<br/>") + "</p>")

    rendered = "\n".join(parts)
    return _PLACEHOLDER_RE.sub(
        lambda m: f"<pre><code>{_escape(code_blocks[int(m.group(1))])}</code></pre>", rendered
    )
