"""Command-line interface for DocMorph."""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from docmorph import __version__
from docmorph.config import get_settings
from docmorph.core.converter import DocumentConverter
from docmorph.formats import FORMAT_NAMES, get_handler_by_name
from docmorph.formatting.ir import (
    Block,
    Blockquote,
    CodeBlock,
    Document,
    Heading,
    Image,
    Inline,
    InlineContainer,
    Link,
    ListBlock,
    Paragraph,
    Table,
    TableRow,
    Text,
)
from docmorph.formatting.serialization import document_to_dict
from docmorph.formatting.validation import validate_document
from docmorph.log import setup_logging

app = typer.Typer(
    name="docmorph",
    help="Convert documents between Markdown, LaTeX and DOCX through a shared IR.",
    add_completion=False,
)
console = Console()

FORMAT_HELP = f"Format name ({', '.join(FORMAT_NAMES)})"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"DocMorph v{__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    settings = get_settings()
    setup_logging("DEBUG" if verbose else settings.log_level, settings.log_file)


def generate_output_path(input_path: Path, target_format: str) -> Path:
    """Generate output path: same stem, target format's extension."""
    handler_class = get_handler_by_name(target_format)
    extension = handler_class().supported_extensions[0]
    return input_path.with_suffix(extension)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """
    Convert documents between Markdown, LaTeX and DOCX.

    Examples:

        docmorph convert notes.md --to latex

        docmorph convert paper.tex -o paper.docx

        docmorph inspect report.docx --json

        docmorph validate document.json
    """


@app.command()
def convert(
    input_path: Path = typer.Argument(
        ...,
        help="Document to convert",
        exists=True,
        dir_okay=False,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output path (default: input name with the target extension)",
    ),
    source_format: Optional[str] = typer.Option(
        None,
        "--from",
        "-f",
        help=f"{FORMAT_HELP}; default: from the input extension",
    ),
    target_format: Optional[str] = typer.Option(
        None,
        "--to",
        "-t",
        help=f"{FORMAT_HELP}; default: from the output extension",
    ),
    validate: bool = typer.Option(
        False,
        "--validate",
        help="Validate the IR structure before writing",
    ),
    standalone: Optional[bool] = typer.Option(
        None,
        "--standalone/--fragment",
        help="Wrap LaTeX output in a compilable article (default: setting)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
) -> None:
    """Convert a document to another format."""
    configure_logging(verbose)

    try:
        if output is None:
            if not target_format:
                console.print("[red]Error:[/red] Pass --to or an --output path")
                raise typer.Exit(1)
            output = generate_output_path(input_path, target_format)

        if verbose:
            console.print(f"[blue]Converting:[/blue] {input_path}")
            console.print(f"[blue]Output:[/blue] {output}")

        converter = DocumentConverter(validate=validate, standalone=standalone)
        document = asyncio.run(
            converter.convert_file(input_path, output, source_format, target_format)
        )
        console.print(f"[green]Success:[/green] {output} ({len(document.blocks)} blocks)")
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)


@app.command()
def inspect(
    input_path: Path = typer.Argument(
        ...,
        help="Document to inspect",
        exists=True,
        dir_okay=False,
    ),
    source_format: Optional[str] = typer.Option(
        None,
        "--from",
        "-f",
        help=f"{FORMAT_HELP}; default: from the input extension",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the IR as JSON instead of a tree",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
) -> None:
    """Show the normalized IR of a document."""
    configure_logging(verbose)

    try:
        document = asyncio.run(DocumentConverter().load_file(input_path, source_format))
    except Exception as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)

    if as_json:
        data = document_to_dict(document, include_version=True)
        # Plain print keeps the output parseable
        typer.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    console.print(build_tree(document, title=input_path.name))


@app.command()
def validate(
    input_path: Path = typer.Argument(
        ...,
        help="IR JSON file to validate",
        exists=True,
        dir_okay=False,
    ),
) -> None:
    """Check the structure of an IR JSON file."""
    configure_logging(False)

    try:
        data = json.loads(input_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] Could not read {input_path}: {escape(str(e))}")
        raise typer.Exit(1)

    violations = validate_document(data)
    if violations:
        console.print(f"[red]Invalid:[/red] {len(violations)} problem(s) in {input_path}")
        for violation in violations:
            console.print(f"  [red]-[/red] {escape(violation)}")
        raise typer.Exit(1)

    console.print(f"[green]Valid:[/green] {input_path}")


# =============================================================================
# IR tree display
# =============================================================================

def build_tree(document: Document, title: str = "Document") -> Tree:
    """Build a rich Tree showing the structure of a document."""
    tree = Tree(f"[bold]{escape(title)}[/bold]")
    for block in document.blocks:
        _add_block(tree, block)
    return tree


def _add_block(parent: Tree, block: Block) -> None:
    label = f"[cyan]{block.tag}[/cyan]"
    if isinstance(block, Heading):
        label += f" level={block.level}"
    elif isinstance(block, ListBlock):
        label += " ordered" if block.ordered else " unordered"
    elif isinstance(block, CodeBlock):
        if block.language:
            label += f" language={escape(block.language)}"
        label += f" [dim]{escape(repr(block.text))}[/dim]"
    elif isinstance(block, Table) and block.alignments:
        label += " " + ",".join(a.value for a in block.alignments)
    node = parent.add(label)

    if isinstance(block, (Paragraph, Heading)):
        for inline in block.inlines:
            _add_inline(node, inline)
    elif isinstance(block, ListBlock):
        for item in block.items:
            item_node = node.add("[cyan]ListItem[/cyan]")
            for child in item.blocks:
                _add_block(item_node, child)
    elif isinstance(block, Blockquote):
        for child in block.blocks:
            _add_block(node, child)
    elif isinstance(block, Table):
        if block.header_row is not None:
            _add_row(node.add("[cyan]headerRow[/cyan]"), block.header_row)
        for row in block.rows:
            _add_row(node.add("[cyan]TableRow[/cyan]"), row)


def _add_row(node: Tree, row: TableRow) -> None:
    for cell in row.cells:
        cell_node = node.add("[cyan]TableCell[/cyan]")
        for child in cell.blocks:
            _add_block(cell_node, child)


def _add_inline(parent: Tree, inline: Inline) -> None:
    if isinstance(inline, Text):
        parent.add(f"[green]Text[/green] {escape(repr(inline.text))}")
        return

    label = f"[green]{inline.tag}[/green]"
    if isinstance(inline, Link):
        label += f" href={escape(inline.href)}"
    elif isinstance(inline, Image):
        label += f" src={escape(inline.src)}"
        if inline.alt:
            label += f" alt={escape(repr(inline.alt))}"
    elif not isinstance(inline, InlineContainer) and inline.plain_text.strip():
        label += f" {escape(repr(inline.plain_text))}"
    node = parent.add(label)

    if isinstance(inline, InlineContainer):
        for child in inline.inlines:
            _add_inline(node, child)


if __name__ == "__main__":
    app()
