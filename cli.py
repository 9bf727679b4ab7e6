"""Exam DOCX formatter CLI."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from docx_package import DocxPackageError, output_path_for
from docx_processor import DocxProcessor
from format_config import FormatConfig, load_config, save_config

app = typer.Typer(
    name="docx-exam-formatter",
    help="Normalise multiple-choice exam formatting inside .docx files",
    add_completion=False,
)
console = Console()


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def build_config(
    config_file: Optional[Path],
    split_options: Optional[bool],
    color_bold: Optional[bool],
    bold_color: Optional[str],
    remove_extra_spaces: Optional[bool],
    center_images: Optional[bool],
    remove_empty_lines: Optional[bool],
    dot_lines: Optional[int],
) -> FormatConfig:
    """Settings file first, command-line flags on top."""
    base = load_config(str(config_file)) if config_file else FormatConfig()
    return base.replace(
        break_tabs_to_newlines=split_options,
        color_bold_text=color_bold,
        bold_color=bold_color,
        remove_extra_spaces=remove_extra_spaces,
        center_images=center_images,
        remove_empty_lines=remove_empty_lines,
        dot_lines_count=dot_lines,
    )


SplitOption = typer.Option(None, "--split-options/--no-split-options", help="Split tab-separated A./B./C./D. options")
ColorBoldOption = typer.Option(None, "--color-bold/--no-color-bold", help="Bold+colour option labels, colour bold runs")
BoldColorOption = typer.Option(None, "--bold-color", help="Hex colour for bold text, e.g. #0000FF")
SpacesOption = typer.Option(None, "--remove-extra-spaces/--keep-extra-spaces", help="Collapse repeated blanks")
CenterOption = typer.Option(None, "--center-images/--no-center-images", help="Centre paragraphs holding images")
EmptyOption = typer.Option(None, "--remove-empty-lines/--keep-empty-lines", help="Drop empty paragraphs")
DotLinesOption = typer.Option(None, "--dot-lines", min=0, help="Dotted answer lines after each question")
ConfigOption = typer.Option(None, "--config", "-c", exists=True, dir_okay=False, help="JSON settings file")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Debug logging")


@app.command("format")
def format_file(
    input_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Input .docx"),
    output_path: Optional[Path] = typer.Option(None, "--output", "-o", help="Output .docx (default: <name>_formatted.docx)"),
    config_file: Optional[Path] = ConfigOption,
    split_options: Optional[bool] = SplitOption,
    color_bold: Optional[bool] = ColorBoldOption,
    bold_color: Optional[str] = BoldColorOption,
    remove_extra_spaces: Optional[bool] = SpacesOption,
    center_images: Optional[bool] = CenterOption,
    remove_empty_lines: Optional[bool] = EmptyOption,
    dot_lines: Optional[int] = DotLinesOption,
    verbose: bool = VerboseOption,
) -> None:
    """Format a single .docx file."""
    setup_logging(verbose)
    try:
        config = build_config(config_file, split_options, color_bold, bold_color,
                              remove_extra_spaces, center_images, remove_empty_lines, dot_lines)
    except ValueError as e:
        console.print(f"[red]Invalid settings:[/red] {e}")
        raise typer.Exit(code=2)

    if output_path is None:
        output_path = input_path.with_name(f"{input_path.stem}_formatted.docx")

    try:
        report = DocxProcessor(config).process_docx(str(input_path), str(output_path))
    except (DocxPackageError, OSError) as e:
        console.print(f"[bold red]Failed:[/bold red] {e}")
        raise typer.Exit(code=1)

    console.print(f"[bold green]Written:[/bold green] {output_path}")
    console.print(f"[dim]{report.summary() or 'no changes'}[/dim]")


@app.command()
def batch(
    directory: Path = typer.Argument(..., exists=True, file_okay=False, help="Directory containing .docx files"),
    output_dir: Path = typer.Option(Path("./output"), "--output-dir", "-o", help="Output directory"),
    config_file: Optional[Path] = ConfigOption,
    split_options: Optional[bool] = SplitOption,
    color_bold: Optional[bool] = ColorBoldOption,
    bold_color: Optional[str] = BoldColorOption,
    remove_extra_spaces: Optional[bool] = SpacesOption,
    center_images: Optional[bool] = CenterOption,
    remove_empty_lines: Optional[bool] = EmptyOption,
    dot_lines: Optional[int] = DotLinesOption,
    verbose: bool = VerboseOption,
) -> None:
    """Format every .docx file in a directory."""
    setup_logging(verbose)
    try:
        config = build_config(config_file, split_options, color_bold, bold_color,
                              remove_extra_spaces, center_images, remove_empty_lines, dot_lines)
    except ValueError as e:
        console.print(f"[red]Invalid settings:[/red] {e}")
        raise typer.Exit(code=2)

    files = sorted(p for p in directory.glob("*.docx") if not p.name.startswith("~$"))
    if not files:
        console.print(f"[yellow]No .docx files in {directory}[/yellow]")
        return

    output_dir.mkdir(parents=True, exist_ok=True)
    processor = DocxProcessor(config)
    failed = 0
    for path in files:
        try:
            processor.process_docx(str(path), output_path_for(str(path), str(output_dir)))
            console.print(f"[green]✓[/green] {path.name}")
        except (DocxPackageError, OSError) as e:
            console.print(f"[red]✗[/red] {path.name}: {e}")
            failed += 1

    console.print(f"[bold]{len(files) - failed}/{len(files)} files formatted[/bold]")
    if failed:
        raise typer.Exit(code=1)


@app.command("config-init")
def config_init(
    path: Path = typer.Argument(Path("formatter_settings.json"), help="Where to write the settings file"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write a settings file with every option at its default."""
    if path.exists() and not force:
        console.print(f"[yellow]{path} already exists (use --force)[/yellow]")
        raise typer.Exit(code=1)
    save_config(FormatConfig(), str(path))
    console.print(f"[bold green]Written:[/bold green] {path}")


if __name__ == "__main__":
    app()
