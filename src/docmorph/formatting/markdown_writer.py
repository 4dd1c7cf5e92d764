"""Markdown writer over mistune-shaped token lists.

The writer consumes the same token dicts ``MarkdownMapper.from_ir``
produces (and mistune itself emits), so the printer never sees IR nodes.
"""

import re
from typing import Any

Token = dict[str, Any]

# Escaped wherever they appear in literal text
INLINE_SPECIALS = re.compile(r"([\\`*_\[\]<|~])")
ENTITY_LIKE = re.compile(r"&(?=#?[A-Za-z0-9]+;)")

# Escaped only where they would start a block construct
LINE_START_MARKER = re.compile(r"^([#>+=-])")
LINE_START_NUMBER = re.compile(r"^(\d+)([.)])")

BACKTICK_RUN = re.compile(r"`+")

ALIGNMENT_RULES = {
    "left": ":--",
    "center": ":-:",
    "right": "--:",
}


def escape_markdown(text: str, at_line_start: bool = False) -> str:
    """Escape literal text so Markdown reads it back unchanged.

    Args:
        text: Literal text
        at_line_start: Whether the text begins a line of output

    Returns:
        Escaped text
    """
    text = INLINE_SPECIALS.sub(r"\\\1", text)
    text = ENTITY_LIKE.sub(r"\\&", text)

    lines = text.split("\n")
    for index, line in enumerate(lines):
        if index == 0 and not at_line_start:
            continue
        line = LINE_START_MARKER.sub(r"\\\1", line)
        lines[index] = LINE_START_NUMBER.sub(r"\1\\\2", line)
    return "\n".join(lines)


def _longest_backtick_run(text: str) -> int:
    return max((len(run) for run in BACKTICK_RUN.findall(text)), default=0)


class MarkdownWriter:
    """Render mistune-shaped tokens as Markdown text."""

    def render(self, tokens: list[Token]) -> str:
        """Render a token list as a Markdown document."""
        body = self.render_blocks(tokens)
        return f"{body}\n" if body else ""

    def render_blocks(self, tokens: list[Token], separator: str = "\n\n") -> str:
        rendered = (self.render_block(token) for token in tokens)
        return separator.join(text for text in rendered if text)

    def render_block(self, token: Token) -> str:
        kind = token.get("type", "")
        attrs = token.get("attrs") or {}
        children = token.get("children") or []

        if kind in ("paragraph", "block_text"):
            return self.render_inlines(children)
        if kind == "heading":
            content = self.render_inlines(children)
            # A trailing run of #'s would be read as a closing sequence
            if content.endswith("#") and not content.endswith("\\#"):
                content = content[:-1] + "\\#"
            prefix = "#" * attrs.get("level", 1)
            return f"{prefix} {content}" if content else prefix
        if kind == "list":
            return self._render_list(token)
        if kind == "block_quote":
            inner = self.render_blocks(children)
            return "\n".join(f"> {line}" if line else ">" for line in inner.split("\n"))
        if kind == "block_code":
            return self._render_code(token)
        if kind == "thematic_break":
            return "---"
        if kind == "table":
            return self._render_table(children)
        if kind == "block_html":
            return token.get("raw", "").rstrip("\n")
        return ""

    def _render_code(self, token: Token) -> str:
        raw = token.get("raw", "")
        info = (token.get("attrs") or {}).get("info") or ""
        fence = "`" * max(3, _longest_backtick_run(raw) + 1)
        if raw and not raw.endswith("\n"):
            raw += "\n"
        if raw == "\n":
            raw = ""
        return f"{fence}{info}\n{raw}{fence}"

    def _render_list(self, token: Token) -> str:
        attrs = token.get("attrs") or {}
        ordered = attrs.get("ordered", False)
        start = attrs.get("start", 1)
        tight = token.get("tight", True)
        block_separator = "\n" if tight else "\n\n"

        items: list[str] = []
        for number, item in enumerate(token.get("children") or [], start=start):
            marker = f"{number}. " if ordered else "- "
            content = self.render_blocks(item.get("children") or [], block_separator)
            if not content:
                items.append(marker.rstrip())
                continue
            indent = " " * len(marker)
            lines = content.split("\n")
            rest = [f"{indent}{line}" if line else "" for line in lines[1:]]
            items.append("\n".join([f"{marker}{lines[0]}", *rest]))
        return block_separator.join(items)

    def _render_table(self, sections: list[Token]) -> str:
        header: list[Token] = []
        rows: list[list[Token]] = []
        for section in sections:
            if section.get("type") == "table_head":
                header = section.get("children") or []
            elif section.get("type") == "table_body":
                rows.extend(row.get("children") or [] for row in section.get("children") or [])

        def line(cells: list[Token]) -> str:
            texts = [
                self.render_inlines(cell.get("children") or []).replace("\n", " ")
                for cell in cells
            ]
            return "| " + " | ".join(texts) + " |"

        rule = [
            ALIGNMENT_RULES.get((cell.get("attrs") or {}).get("align"), "---")
            for cell in header
        ]
        lines = [line(header), "| " + " | ".join(rule) + " |"]
        lines.extend(line(row) for row in rows)
        return "\n".join(lines)

    # =========================================================================
    # Inlines
    # =========================================================================

    def render_inlines(self, tokens: list[Token]) -> str:
        parts: list[str] = []
        for token in tokens:
            at_line_start = not parts or parts[-1].endswith("\n")
            rendered = self.render_inline(token, at_line_start)
            # A bare "!" right before a link would turn it into an image
            if rendered.startswith("[") and parts and parts[-1].endswith("!"):
                parts[-1] = parts[-1][:-1] + "\\!"
            parts.append(rendered)
        return "".join(parts)

    def render_inline(self, token: Token, at_line_start: bool = False) -> str:
        kind = token.get("type", "")
        attrs = token.get("attrs") or {}
        children = token.get("children") or []

        if kind == "text":
            return escape_markdown(token.get("raw", ""), at_line_start)
        if kind in ("strong", "emphasis"):
            inner = self.render_inlines(children)
            if not inner:
                return ""
            marker = "**" if kind == "strong" else "*"
            return f"{marker}{inner}{marker}"
        if kind == "codespan":
            return self._render_codespan(token.get("raw", ""))
        if kind == "link":
            label = self.render_inlines(children)
            return f"[{label}]({self._destination(attrs.get('url', ''))})"
        if kind == "image":
            alt = self.render_inlines(children)
            return f"![{alt}]({self._destination(attrs.get('url', ''))})"
        if kind == "linebreak":
            return "  \n"
        if kind == "softbreak":
            return "\n"
        if kind == "inline_html":
            return token.get("raw", "")
        if kind == "strikethrough":
            return f"~~{self.render_inlines(children)}~~"
        return ""

    def _render_codespan(self, text: str) -> str:
        fence = "`" * (_longest_backtick_run(text) + 1)
        padded = text.startswith("`") or text.endswith("`")
        if text.startswith(" ") and text.endswith(" ") and text.strip():
            padded = True
        if padded:
            return f"{fence} {text} {fence}"
        return f"{fence}{text}{fence}"

    def _destination(self, url: str) -> str:
        if re.search(r"[\s()]", url):
            return f"<{url}>"
        return url
