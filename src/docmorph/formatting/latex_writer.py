"""LaTeX writer for rendering IR documents as LaTeX source."""

from docmorph.formatting.ir import (
    Block,
    Blockquote,
    CodeBlock,
    CodeSpan,
    Document,
    Emphasis,
    Heading,
    HorizontalRule,
    Image,
    Inline,
    LineBreak,
    Link,
    ListBlock,
    ListItem,
    Paragraph,
    Strong,
    Table,
    TableAlignment,
    TableCell,
    TableRow,
    Text,
    Underline,
)


HEADING_COMMANDS = {
    1: "section",
    2: "subsection",
    3: "subsubsection",
    4: "paragraph",
    5: "subparagraph",
    # LaTeX has no sixth sectioning level
    6: "subparagraph",
}

ALIGNMENT_LETTERS = {
    TableAlignment.LEFT: "l",
    TableAlignment.CENTER: "c",
    TableAlignment.RIGHT: "r",
}

ESCAPES = {
    "\\": "\\textbackslash{}",
    "~": "\\textasciitilde{}",
    "^": "\\textasciicircum{}",
    "#": "\\#",
    "$": "\\$",
    "%": "\\%",
    "&": "\\&",
    "_": "\\_",
    "{": "\\{",
    "}": "\\}",
}

PREAMBLE = "\n".join(
    [
        "\\documentclass{article}",
        "\\usepackage{hyperref}",
        "\\usepackage{graphicx}",
        "\\usepackage{listings}",
        "",
        "\\begin{document}",
    ]
)


def escape_latex(text: str) -> str:
    """Escape LaTeX special characters in a single pass."""
    return "".join(ESCAPES.get(char, char) for char in text)


class LatexWriter:
    """Render an IR Document as LaTeX source."""

    def render(self, document: Document, standalone: bool = False) -> str:
        """Convert a Document to LaTeX.

        Args:
            document: The document to render
            standalone: Wrap the body in a minimal compilable article

        Returns:
            LaTeX source
        """
        body = self.render_blocks(document.blocks)
        if not standalone:
            return body
        return f"{PREAMBLE}\n\n{body}\n\n\\end{{document}}\n"

    def render_blocks(self, blocks: list[Block]) -> str:
        rendered = (self.render_block(block) for block in blocks)
        return "\n\n".join(text for text in rendered if text)

    def render_block(self, block: Block) -> str:
        if isinstance(block, Paragraph):
            return self.render_inlines(block.inlines)
        if isinstance(block, Heading):
            command = HEADING_COMMANDS.get(block.level, "section")
            return f"\\{command}{{{self.render_inlines(block.inlines)}}}"
        if isinstance(block, ListBlock):
            return self._render_list(block)
        if isinstance(block, Blockquote):
            return f"\\begin{{quote}}\n{self.render_blocks(block.blocks)}\n\\end{{quote}}"
        if isinstance(block, CodeBlock):
            if block.language:
                return (
                    f"\\begin{{lstlisting}}[language={block.language}]\n"
                    f"{block.text}\n\\end{{lstlisting}}"
                )
            return f"\\begin{{verbatim}}\n{block.text}\n\\end{{verbatim}}"
        if isinstance(block, HorizontalRule):
            return "\\hrule"
        if isinstance(block, Table):
            return self._render_table(block)
        return ""

    def _render_list(self, block: ListBlock) -> str:
        env = "enumerate" if block.ordered else "itemize"
        items = "\n".join(self._render_item(item) for item in block.items)
        return f"\\begin{{{env}}}\n{items}\n\\end{{{env}}}"

    def _render_item(self, item: ListItem) -> str:
        parts = [self.render_block(block) for block in item.blocks]
        parts = [part for part in parts if part]
        if not parts:
            return "\\item"
        # Later blocks follow after a blank line so paragraphs stay apart
        first, rest = parts[0], parts[1:]
        # An empty group keeps a leading bracket from reading as an item label
        if first.startswith("["):
            first = "{}" + first
        if rest:
            return f"\\item {first}\n\n" + "\n\n".join(rest)
        return f"\\item {first}"

    def _render_table(self, table: Table) -> str:
        columns = table.column_count
        letters = [ALIGNMENT_LETTERS[TableAlignment(a)] for a in table.alignments or []]
        letters.extend("l" * (columns - len(letters)))
        spec = "".join(letters) or "l"

        lines = [f"\\begin{{tabular}}{{{spec}}}"]
        if table.header_row is not None:
            lines.append("\\hline")
            lines.append(f"{self._render_row(table.header_row)} \\\\")
            lines.append("\\hline")
        for row in table.rows:
            lines.append(f"{self._render_row(row)} \\\\")
        lines.append("\\end{tabular}")
        return "\n".join(lines)

    def _render_row(self, row: TableRow) -> str:
        return " & ".join(self._render_cell(cell) for cell in row.cells)

    def _render_cell(self, cell: TableCell) -> str:
        parts: list[str] = []
        for block in cell.blocks:
            if isinstance(block, (Paragraph, Heading)):
                parts.append(self.render_inlines(block.inlines))
            elif isinstance(block, CodeBlock):
                parts.append(f"\\texttt{{{escape_latex(block.text)}}}")
        text = " ".join(part for part in parts if part)
        return text or "{}"

    # =========================================================================
    # Inlines
    # =========================================================================

    def render_inlines(self, inlines: list[Inline]) -> str:
        return "".join(self.render_inline(inline) for inline in inlines)

    def render_inline(self, inline: Inline) -> str:
        if isinstance(inline, Text):
            return escape_latex(inline.text)
        if isinstance(inline, Strong):
            return f"\\textbf{{{self.render_inlines(inline.inlines)}}}"
        if isinstance(inline, Emphasis):
            return f"\\textit{{{self.render_inlines(inline.inlines)}}}"
        if isinstance(inline, Underline):
            return f"\\underline{{{self.render_inlines(inline.inlines)}}}"
        if isinstance(inline, Link):
            return (
                f"\\href{{{escape_latex(inline.href)}}}"
                f"{{{self.render_inlines(inline.inlines)}}}"
            )
        if isinstance(inline, CodeSpan):
            return f"\\texttt{{{escape_latex(inline.text)}}}"
        if isinstance(inline, Image):
            return f"\\includegraphics{{{escape_latex(inline.src)}}}"
        if isinstance(inline, LineBreak):
            return "\\newline "
        return ""
