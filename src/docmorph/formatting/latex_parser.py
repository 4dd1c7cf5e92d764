"""LaTeX parser for converting LaTeX source to IR.

LaTeX has no tree-structured parser we can lean on, so this module does
the work by hand: a line-oriented block segmenter that re-scans
environment bodies recursively, and a single-pass inline tokenizer that
reads brace-balanced command arguments.

Malformed input never raises. Unclosed groups and environments run to the
end of the input and unknown commands degrade to literal text.
"""

import re
from typing import Optional

from loguru import logger

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
from docmorph.formatting.normalize import normalize


HEADING_LEVELS = {
    "section": 1,
    "subsection": 2,
    "subsubsection": 3,
    "paragraph": 4,
    "subparagraph": 5,
}

ALIGNMENT_LETTERS = {
    "l": TableAlignment.LEFT,
    "c": TableAlignment.CENTER,
    "r": TableAlignment.RIGHT,
}

# Characters the writer escapes with a plain backslash prefix
ESCAPED_CHARS = "#$%&_{}"

# Characters the writer spells out as text commands
WORD_ESCAPES = {
    "textbackslash": "\\",
    "textasciitilde": "~",
    "textasciicircum": "^",
}

CONTAINER_COMMANDS = {
    "textbf": Strong,
    "textit": Emphasis,
    "emph": Emphasis,
    "underline": Underline,
}

SKIPPED_COMMANDS = {
    "\\maketitle",
    "\\tableofcontents",
    "\\newpage",
    "\\clearpage",
    "\\noindent",
}

RULE_LINES = {"\\hrule", "\\hline"}
CODE_ENVIRONMENTS = {"verbatim", "lstlisting"}
LIST_ENVIRONMENTS = {"itemize": False, "enumerate": True}


class LatexParser:
    """Parse LaTeX source into a normalized IR Document."""

    HEADING_PATTERN = re.compile(
        r"^\\(section|subsection|subsubsection|paragraph|subparagraph)\*?(?=\{)"
    )
    LABEL_PATTERN = re.compile(r"\\label\{[^}]*\}")
    BEGIN_PATTERN = re.compile(r"^\\begin\{([A-Za-z*]+)\}(.*)$")
    BODY_PATTERN = re.compile(
        r"\\begin\{document\}(.*?)(?:\\end\{document\}|\Z)", re.DOTALL
    )
    ITEM_PATTERN = re.compile(r"^\\item(?![A-Za-z])\s*(?:\[[^\]]*\])?\s*(?:\{\})?(.*)$")
    ENV_BEGIN = re.compile(r"\\begin\{")
    ENV_END = re.compile(r"\\end\{")
    LANGUAGE_OPTION = re.compile(r"language\s*=\s*\{?([^,\]\}\s]+)")
    COMMAND_PATTERN = re.compile(r"\\([A-Za-z]+)")
    RULE_START = re.compile(
        r"^\s*(?:\\hline|\\toprule|\\midrule|\\bottomrule|\\cline\{[^}]*\})"
    )
    RULE_MARKERS = re.compile(
        r"\\hline|\\toprule|\\midrule|\\bottomrule|\\cline\{[^}]*\}"
    )
    CELL_SEPARATOR = re.compile(r"(?<!\\)&")
    ROW_SEPARATOR = re.compile(r"\\\\")
    UNESCAPE_PATTERN = re.compile(
        r"\\(?:([#$%&_{}])|(textbackslash|textasciitilde|textasciicircum)(?:\{\})?)"
    )

    def parse(self, text: str) -> Document:
        """Convert LaTeX source to a normalized Document.

        When the source holds a ``document`` environment, only its body is
        read and the preamble is ignored.

        Args:
            text: LaTeX source

        Returns:
            Normalized Document
        """
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        body = self.BODY_PATTERN.search(text)
        if body:
            logger.debug("Found document environment, ignoring preamble")
            text = body.group(1)

        blocks = self.parse_blocks(text.split("\n"))
        return normalize(Document(blocks=blocks))

    # =========================================================================
    # Block segmentation
    # =========================================================================

    def parse_blocks(self, lines: list[str]) -> list[Block]:
        """Segment source lines into blocks."""
        blocks: list[Block] = []
        paragraph: list[Inline] = []

        def flush() -> None:
            if paragraph:
                blocks.append(Paragraph(inlines=list(paragraph)))
                paragraph.clear()

        index = 0
        while index < len(lines):
            line, had_comment = strip_comment(lines[index])
            stripped = line.strip()
            index += 1

            if not stripped:
                # A comment-only line does not end the paragraph
                if not had_comment:
                    flush()
                continue

            if stripped in SKIPPED_COMMANDS:
                continue

            heading = self.HEADING_PATTERN.match(stripped)
            if heading:
                flush()
                title, end = read_group(stripped, heading.end())
                blocks.append(
                    Heading(
                        level=HEADING_LEVELS[heading.group(1)],
                        inlines=self.tokenize(title),
                    )
                )
                trailing = self.LABEL_PATTERN.sub("", stripped[end:]).strip()
                if trailing:
                    paragraph.extend(self.tokenize(trailing))
                continue

            begin = self.BEGIN_PATTERN.match(stripped)
            if begin:
                flush()
                name, rest = begin.group(1), begin.group(2)
                if name in CODE_ENVIRONMENTS:
                    code, index = self._collect_raw(lines, index, name)
                    blocks.append(CodeBlock(text=code, language=self._language(rest)))
                    continue

                body, index = self._collect_environment(lines, index, name)
                blocks.extend(self._parse_environment(name, rest, body))
                continue

            if stripped in RULE_LINES:
                flush()
                blocks.append(HorizontalRule())
                continue

            if paragraph:
                paragraph.append(Text(text=" "))
            paragraph.extend(self.tokenize(stripped))

        flush()
        return blocks

    def _parse_environment(self, name: str, rest: str, body: list[str]) -> list[Block]:
        """Turn a collected environment body into blocks."""
        if name == "tabular":
            spec, rest = self._read_column_spec(rest)
            if rest.strip():
                body = [rest, *body]
            return [self._parse_table(body, spec)]

        if rest.strip():
            body = [rest, *body]

        if name == "quote":
            return [Blockquote(blocks=self.parse_blocks(body))]
        if name in LIST_ENVIRONMENTS:
            return [self._parse_list(body, LIST_ENVIRONMENTS[name])]

        logger.debug(f"Treating environment '{name}' as transparent")
        return self.parse_blocks(body)

    def _collect_environment(
        self, lines: list[str], start: int, name: str
    ) -> tuple[list[str], int]:
        """Collect lines up to the matching ``\\end{name}``.

        Nested environments of the same name are counted so the outer
        environment closes on its own end marker.
        """
        begin_marker = f"\\begin{{{name}}}"
        end_marker = f"\\end{{{name}}}"
        depth = 1
        body: list[str] = []

        index = start
        while index < len(lines):
            line = lines[index]
            stripped = strip_comment(line)[0].strip()
            index += 1
            if stripped.startswith(begin_marker):
                depth += 1
            elif stripped.startswith(end_marker):
                depth -= 1
                if depth == 0:
                    return body, index
            body.append(line)

        logger.warning(f"Unclosed environment '{name}', reading to end of input")
        return body, index

    def _collect_raw(self, lines: list[str], start: int, name: str) -> tuple[str, int]:
        """Collect verbatim lines up to ``\\end{name}`` without interpretation."""
        end_marker = f"\\end{{{name}}}"
        body: list[str] = []

        index = start
        while index < len(lines):
            line = lines[index]
            index += 1
            if line.strip() == end_marker:
                return "\n".join(body), index
            body.append(line)

        logger.warning(f"Unclosed environment '{name}', reading to end of input")
        return "\n".join(body), index

    def _language(self, options: str) -> Optional[str]:
        """Get the ``language=`` value from an lstlisting option list."""
        options = options.strip()
        if not options.startswith("["):
            return None
        match = self.LANGUAGE_OPTION.search(options)
        return match.group(1) if match else None

    def _parse_list(self, body: list[str], ordered: bool) -> ListBlock:
        """Split a list body on top-level ``\\item`` markers."""
        leading: list[str] = []
        items: list[list[str]] = []
        depth = 0

        for line in body:
            content = line
            stripped = strip_comment(line)[0].strip()
            item = self.ITEM_PATTERN.match(stripped) if depth == 0 else None
            if item:
                items.append([])
                content = item.group(1)

            if items and (item is None or content):
                items[-1].append(content)
            elif not items:
                leading.append(content)

            code = strip_comment(content)[0]
            depth += len(self.ENV_BEGIN.findall(code)) - len(self.ENV_END.findall(code))
            depth = max(depth, 0)

        if any(line.strip() for line in leading):
            items.insert(0, leading)

        return ListBlock(
            ordered=ordered,
            items=[ListItem(blocks=self.parse_blocks(lines)) for lines in items],
        )

    # =========================================================================
    # Tables
    # =========================================================================

    def _read_column_spec(self, rest: str) -> tuple[str, str]:
        """Split ``[pos]{spec}remainder`` after ``\\begin{tabular}``."""
        rest = rest.lstrip()
        if rest.startswith("["):
            close = rest.find("]")
            rest = rest[close + 1 :].lstrip() if close != -1 else ""
        if not rest.startswith("{"):
            return "", rest
        spec, end = read_group(rest, 0)
        return spec, rest[end:]

    def _parse_alignments(self, spec: str) -> Optional[list[TableAlignment]]:
        # Drop argument groups such as p{3cm} or @{} before reading letters
        letters = re.sub(r"\{[^{}]*\}", "", spec)
        alignments = [
            ALIGNMENT_LETTERS[char] for char in letters if char in ALIGNMENT_LETTERS
        ]
        return alignments or None

    def _parse_table(self, body: list[str], spec: str) -> Table:
        flat = " ".join(strip_comment(line)[0].strip() for line in body)
        parts = self.ROW_SEPARATOR.split(flat)

        rows: list[tuple[TableRow, bool]] = []
        for position, part in enumerate(parts):
            row_text = self.RULE_MARKERS.sub("", part).strip()
            if not row_text:
                continue
            ruled = position + 1 < len(parts) and bool(
                self.RULE_START.match(parts[position + 1])
            )
            rows.append((self._parse_row(row_text), ruled))

        header_row: Optional[TableRow] = None
        if rows and rows[0][1]:
            header_row = rows.pop(0)[0]

        return Table(
            header_row=header_row,
            rows=[row for row, _ in rows],
            alignments=self._parse_alignments(spec),
        )

    def _parse_row(self, row_text: str) -> TableRow:
        cells = []
        for cell in self.CELL_SEPARATOR.split(row_text):
            text = cell.strip()
            # An empty group marks a cell with no content
            if text == "{}":
                text = ""
            cells.append(TableCell(blocks=[Paragraph(inlines=self.tokenize(text))]))
        return TableRow(cells=cells)

    # =========================================================================
    # Inline tokenization
    # =========================================================================

    def tokenize(self, text: str) -> list[Inline]:
        """Tokenize one line of LaTeX into inline nodes.

        Known commands become structured nodes; every other span up to the
        next backslash is kept as literal text.
        """
        inlines: list[Inline] = []
        pos = 0
        while pos < len(text):
            if text[pos] != "\\":
                end = text.find("\\", pos)
                if end == -1:
                    end = len(text)
                inlines.append(Text(text=text[pos:end]))
                pos = end
                continue

            inline, end = self._read_command(text, pos)
            if inline is None:
                inlines.append(Text(text="\\"))
                pos += 1
            else:
                inlines.append(inline)
                pos = end
        return inlines

    def _read_command(self, text: str, pos: int) -> tuple[Optional[Inline], int]:
        """Read the command starting at ``text[pos] == '\\'``.

        Returns:
            Tuple of (node, index after the command), or (None, pos) when
            the command is not recognized
        """
        following = text[pos + 1 : pos + 2]
        if following == "\\":
            return LineBreak(), pos + 2
        if following and following in ESCAPED_CHARS:
            return Text(text=following), pos + 2

        match = self.COMMAND_PATTERN.match(text, pos)
        if not match:
            return None, pos
        name = match.group(1)
        end = match.end()

        if name in WORD_ESCAPES:
            if text.startswith("{}", end):
                end += 2
            return Text(text=WORD_ESCAPES[name]), end

        if name == "newline":
            if text.startswith(" ", end):
                end += 1
            return LineBreak(), end

        if name == "includegraphics":
            if text.startswith("[", end):
                close = text.find("]", end)
                if close == -1:
                    return None, pos
                end = close + 1
            if not text.startswith("{", end):
                return None, pos
            src, end = read_group(text, end)
            return Image(src=self.unescape(src)), end

        if not text.startswith("{", end):
            return None, pos

        content, end = read_group(text, end)
        if name in CONTAINER_COMMANDS:
            return CONTAINER_COMMANDS[name](inlines=self.tokenize(content)), end
        if name == "texttt":
            return CodeSpan(text=self.unescape(content)), end
        if name == "href":
            if not text.startswith("{", end):
                return None, pos
            label, end = read_group(text, end)
            return Link(href=self.unescape(content), inlines=self.tokenize(label)), end
        return None, pos

    def unescape(self, text: str) -> str:
        """Decode the escapes produced by the LaTeX writer."""

        def replace(match: re.Match) -> str:
            if match.group(1):
                return match.group(1)
            return WORD_ESCAPES[match.group(2)]

        return self.UNESCAPE_PATTERN.sub(replace, text)


def strip_comment(line: str) -> tuple[str, bool]:
    """Remove an unescaped ``%`` comment from a line.

    Returns:
        Tuple of (line without comment, whether a comment was removed)
    """
    index = 0
    while index < len(line):
        char = line[index]
        if char == "\\":
            index += 2
            continue
        if char == "%":
            return line[:index], True
        index += 1
    return line, False


def read_group(text: str, start: int) -> tuple[str, int]:
    """Read a brace-balanced group whose ``{`` is at ``text[start]``.

    Backslash-escaped characters never open or close a group. An unclosed
    group takes the rest of the input.

    Returns:
        Tuple of (group content, index after the closing brace)
    """
    depth = 0
    index = start
    while index < len(text):
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start + 1 : index], index + 1
        index += 1
    return text[start + 1 :], len(text)
