"""
Command-line interface for mdlingo.

Provides commands for:
- Creating a config file
- Translating one Markdown document or a glob of them
- Managing and checking a terminology glossary
- Managing API keys

Usage:
    mdlingo init
    mdlingo translate --input docs/intro.md --lang ja
    mdlingo batch "docs/en/**/*.md" --lang ja --output-dir docs/ja
    mdlingo glossary check docs/ja/intro.md --lang ja
    mdlingo keys set anthropic
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from mdlingo import __version__
from mdlingo.batch import BatchProgress, batch_translate
from mdlingo.chunking import split_into_chunks
from mdlingo.config import (
    APP_NAME,
    DEFAULT_CONFIG_FILE,
    DEFAULT_GLOSSARY_FILE,
    DEFAULT_MODELS,
    AppConfig,
    init_config,
    load_config,
)
from mdlingo.errors import MdlingoError
from mdlingo.glossary import (
    check_document,
    init_glossary,
    require_glossary,
    review_glossary,
    sync_glossary,
)
from mdlingo.glossary.store import GlossaryConfig
from mdlingo.keys import SERVICES, KeyManager, env_var_for
from mdlingo.logger import ExecutionLogger
from mdlingo.masking import protect_code, separate_frontmatter
from mdlingo.pipeline import (
    PipelineConfig,
    TranslationPipeline,
    load_template,
    read_source,
    resolve_output_path,
)
from mdlingo.translate import LoggedRewriter, Rewriter, create_rewriter

app = typer.Typer(
    name=APP_NAME,
    help="mdlingo: Markdown translation with code protection and glossary checks",
    add_completion=False,
)
glossary_app = typer.Typer(help="Manage the terminology glossary.")
app.add_typer(glossary_app, name="glossary")

console = Console()

# Provider -> key service used by the key manager
PROVIDER_KEYS = {"claude": "anthropic", "gemini": "gemini", "openai": "openai", "ollama": None}


@dataclass
class State:
    """Global options shared by all commands."""
    config_path: Optional[Path] = None
    dry_run: bool = False
    verbose: bool = False

    def load_config(self) -> Optional[AppConfig]:
        """The explicit config, else ./mdlingo.config.yaml if present."""
        if self.config_path is not None:
            return load_config(self.config_path, env_dir=self.config_path.parent)
        if DEFAULT_CONFIG_FILE.exists():
            return load_config(DEFAULT_CONFIG_FILE)
        return None


state = State()


def fail(error: MdlingoError) -> NoReturn:
    console.print(f"[red]Error:[/] {escape(error.message)}")
    if error.hint:
        console.print(f"[yellow]Hint:[/] {escape(error.hint)}")
    raise typer.Exit(1)


def version_callback(value: bool):
    if value:
        console.print(f"{APP_NAME} v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c",
        help=f"Config file (default: ./{DEFAULT_CONFIG_FILE})",
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run",
        help="Show what would be done without calling the model",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Verbose logging",
    ),
):
    """mdlingo: translate Markdown documents with an LLM."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    state.config_path = config
    state.dry_run = dry_run
    state.verbose = verbose


# ============================================================================
# Helpers
# ============================================================================

def build_rewriter(
    config: Optional[AppConfig],
    provider: Optional[str] = None,
    model: Optional[str] = None,
) -> Rewriter:
    """Rewriter from CLI options, falling back to the config file."""
    if provider is None:
        provider = config.provider if config else "claude"
    if model is None and config and config.provider == provider:
        model = config.model

    rewriter = create_rewriter(provider, model=model, base_url=config.base_url if config else None)
    if config and config.log.enabled:
        rewriter = LoggedRewriter(rewriter, ExecutionLogger(config.log.path), provider)
    return rewriter


def resolve_template(config: Optional[AppConfig], template: Optional[Path]) -> Optional[str]:
    if template is not None:
        return load_template(template)
    if config is not None and (path := config.template_path()) is not None:
        return load_template(path)
    return None


def resolve_glossary(config: Optional[AppConfig], glossary: Optional[Path]) -> Optional[GlossaryConfig]:
    path = glossary or (config.glossary if config else None)
    if path is None:
        return None
    loaded = require_glossary(path)
    console.print(f"[green]Loaded glossary:[/] {len(loaded)} terms from {escape(str(path))}")
    return loaded


def glossary_path(config: Optional[AppConfig], glossary: Optional[Path]) -> Path:
    if glossary is not None:
        return glossary
    if config is not None and config.glossary is not None:
        return config.glossary
    return DEFAULT_GLOSSARY_FILE


# ============================================================================
# Commands
# ============================================================================

@app.command()
def init(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config file"),
):
    """Create a config file in the current directory."""
    path = state.config_path or DEFAULT_CONFIG_FILE
    try:
        init_config(path, force=force)
    except MdlingoError as e:
        fail(e)
    console.print(f"[green]✓[/] Created {escape(str(path))}")
    console.print("Edit it to choose a provider and model, then run: [cyan]mdlingo translate[/]")


@app.command()
def translate(
    input_file: Path = typer.Option(..., "--input", "-i", help="Markdown file to translate"),
    target_lang: str = typer.Option(..., "--lang", "-l", help="Target language code (e.g. ja, en)"),
    output_file: Optional[Path] = typer.Option(
        None, "--output", "-o",
        help="Output file (default: <name>.<lang>.md beside the input)",
    ),
    template: Optional[Path] = typer.Option(None, "--template", "-t", help="Custom prompt template"),
    glossary: Optional[Path] = typer.Option(None, "--glossary", "-g", help="Glossary YAML file"),
    provider: Optional[str] = typer.Option(
        None, "--provider", "-p",
        help="Provider (claude, gemini, ollama, openai, dummy)",
    ),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name"),
):
    """Translate one Markdown document."""
    try:
        config = state.load_config()
        destination = resolve_output_path(input_file, target_lang, output_file)

        if state.dry_run:
            split = separate_frontmatter(read_source(input_file))
            protected = protect_code(split.body)
            chunks = split_into_chunks(protected.text)
            console.print("[bold]Dry run[/] (no model calls)")
            console.print(f"  Input:  {escape(str(input_file))}")
            console.print(f"  Output: {escape(str(destination))}")
            console.print(f"  Chunks: {len(chunks)}, protected code spans: {len(protected.registry)}")
            return

        pipeline_config = PipelineConfig(
            target_lang=target_lang,
            template=resolve_template(config, template),
            glossary=resolve_glossary(config, glossary),
        )
        rewriter = build_rewriter(config, provider, model)
        pipeline = TranslationPipeline(rewriter, pipeline_config)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Translating...", total=100)

            def update_progress(msg: str, pct: float):
                progress.update(task, description=msg, completed=int(pct * 100))

            pipeline.progress_callback = update_progress
            result = pipeline.translate_file(input_file, destination)
    except MdlingoError as e:
        fail(e)

    console.print(f"[green]✓[/] Translated to {escape(str(result.output_path))}")
    if state.verbose:
        console.print(
            f"  Tokens: {result.usage.total_tokens} "
            f"({result.chunk_count} chunk{'s' if result.chunk_count != 1 else ''})"
        )
    for placeholder in result.missing_placeholders:
        console.print(f"[yellow]Warning:[/] {escape(placeholder)} was lost in translation")


@app.command()
def batch(
    pattern: str = typer.Argument(..., help='Glob pattern, quoted (e.g. "docs/**/*.md")'),
    target_lang: str = typer.Option(..., "--lang", "-l", help="Target language code"),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-d",
        help="Mirror the input tree under this directory",
    ),
    template: Optional[Path] = typer.Option(None, "--template", "-t", help="Custom prompt template"),
    glossary: Optional[Path] = typer.Option(None, "--glossary", "-g", help="Glossary YAML file"),
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="Provider"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name"),
):
    """Translate every file matching a glob pattern."""

    def report(item: BatchProgress):
        prefix = f"[cyan]{escape(item.prefix)}[/]"
        if state.dry_run:
            console.print(f"{prefix} Would translate:")
            console.print(f"  Input:  {escape(item.input_path)}")
            console.print(f"  Output: {escape(str(item.output_path))}")
        elif item.error is None:
            console.print(f"{prefix} [green]✓[/] {escape(item.input_path)} → {escape(str(item.output_path))}")
        else:
            console.print(f"{prefix} [red]✗[/] {escape(item.input_path)}: {escape(item.error)}")

    try:
        config = state.load_config()
        if output_dir is None and config is not None:
            output_dir = config.output_dir

        if state.dry_run:
            rewriter = create_rewriter("dummy")
            template_text, glossary_config = None, None
        else:
            template_text = resolve_template(config, template)
            glossary_config = resolve_glossary(config, glossary)
            rewriter = build_rewriter(config, provider, model)

        result = batch_translate(
            pattern,
            target_lang,
            rewriter,
            output_dir=output_dir,
            dry_run=state.dry_run,
            progress_callback=report,
            template=template_text,
            glossary=glossary_config,
        )
    except MdlingoError as e:
        fail(e)

    table = Table(title="Summary")
    table.add_column("Total", justify="right")
    table.add_column("Succeeded", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red" if result.failed else "dim")
    table.add_row(str(result.total), str(result.succeeded), str(result.failed))
    console.print()
    console.print(table)

    if result.errors:
        console.print("\n[red]Errors:[/]")
        for error in result.errors:
            console.print(f"  {escape(error.file)}: {escape(error.error)}")
        raise typer.Exit(1)


# ============================================================================
# Glossary
# ============================================================================

@glossary_app.command("init")
def glossary_init(
    path: Optional[Path] = typer.Option(None, "--glossary", "-g", help="Glossary file to create"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing glossary"),
):
    """Create a glossary skeleton."""
    try:
        target = glossary_path(state.load_config(), path)
        init_glossary(target, force=force)
    except MdlingoError as e:
        fail(e)
    console.print(f"[green]✓[/] Created {escape(str(target))}")


@glossary_app.command("check")
def glossary_check(
    document: Path = typer.Argument(..., help="Markdown, JSON or YAML document"),
    lang: str = typer.Option(..., "--lang", "-l", help="Language the document is written in"),
    glossary: Optional[Path] = typer.Option(None, "--glossary", "-g", help="Glossary YAML file"),
):
    """Find forbidden term variants in a document."""
    try:
        path = glossary_path(state.load_config(), glossary)
        issues = check_document(document, require_glossary(path), lang)
    except MdlingoError as e:
        fail(e)

    if not issues:
        console.print(f"[green]✓[/] No glossary issues in {escape(str(document))}")
        return

    table = Table(title=f"Glossary issues: {document}")
    table.add_column("Location", style="cyan")
    table.add_column("Found", style="red")
    table.add_column("Term")
    table.add_column("Use", style="green")
    for issue in issues:
        table.add_row(issue.location, issue.forbidden, issue.canonical, issue.suggestion or "-")
    console.print(table)
    console.print(f"\n[yellow]{len(issues)} issue(s) found[/]")
    raise typer.Exit(1)


@glossary_app.command("sync")
def glossary_sync(
    glossary: Optional[Path] = typer.Option(None, "--glossary", "-g", help="Glossary YAML file"),
    write: bool = typer.Option(True, "--write/--no-write", help="Add empty stubs for missing translations (rewrites the file; comments are dropped)"),
):
    """Report translation coverage per language.

    With --write (the default) the glossary file is rewritten with empty
    stubs added. Other keys are kept, but YAML comments are removed.
    """
    try:
        path = glossary_path(state.load_config(), glossary)
        result = sync_glossary(path, write_stubs=write and not state.dry_run)
    except MdlingoError as e:
        fail(e)

    table = Table(title=f"Glossary coverage ({result.total_terms} terms)")
    table.add_column("Language", style="cyan")
    table.add_column("Translated", justify="right")
    table.add_column("Coverage", justify="right")
    for lang, terms in result.terms_by_language.items():
        table.add_row(lang, str(len(terms)), f"{result.coverage(lang):.0%}")
    console.print(table)

    if result.missing_translations:
        console.print("\n[yellow]Missing translations:[/]")
        for missing in result.missing_translations:
            console.print(f"  {escape(missing.canonical)}: {', '.join(missing.missing_languages)}")
    if result.stubs_created:
        console.print(f"\n[green]✓[/] Added {result.stubs_created} stub(s) to {escape(str(path))}")


@glossary_app.command("review")
def glossary_review(
    glossary: Optional[Path] = typer.Option(None, "--glossary", "-g", help="Glossary YAML file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the report to a file"),
    fmt: str = typer.Option("markdown", "--format", "-f", help="Report format: markdown or json"),
):
    """Produce a review report of all terms."""
    if fmt not in ("markdown", "json"):
        console.print(f"[red]Error:[/] Unknown format '{escape(fmt)}'")
        console.print("Available formats: markdown, json")
        raise typer.Exit(1)

    try:
        report = review_glossary(glossary_path(state.load_config(), glossary))
    except MdlingoError as e:
        fail(e)

    if fmt == "json":
        text = json.dumps(
            {"summary": report.summary, "terms": [term.to_dict() for term in report.terms]},
            ensure_ascii=False,
            indent=2,
        )
    else:
        text = report.to_markdown()

    if output is not None:
        output.write_text(text, encoding="utf-8")
        console.print(f"[green]✓[/] Report written to {escape(str(output))}")
    else:
        console.print(text, markup=False, highlight=False)


# ============================================================================
# Keys & Info
# ============================================================================

@app.command()
def keys(
    action: str = typer.Argument(..., help="Action: list, set, status, delete"),
    service: Optional[str] = typer.Argument(None, help="Service name (anthropic, gemini, openai)"),
):
    """Manage API keys.

    Examples:
        mdlingo keys list              # List all keys
        mdlingo keys set anthropic     # Store the Anthropic key
        mdlingo keys status openai     # Check OpenAI key status
        mdlingo keys delete openai     # Delete OpenAI key
    """
    km = KeyManager()

    if action == "list":
        table = Table(title="API Keys Status")
        table.add_column("Service", style="cyan")
        table.add_column("Status")
        table.add_column("Source", style="yellow")
        table.add_column("Value", style="dim")
        try:
            infos = km.list_keys()
        except MdlingoError as e:
            fail(e)
        for info in infos:
            status = "[green]✓ Set[/]" if info.is_set else "[red]✗ Not set[/]"
            table.add_row(info.service, status, info.source, info.masked_value or "-")
        console.print(table)
        console.print("\n[dim]Priority: env > keychain > key file[/]")
        return

    if action not in ("set", "status", "delete"):
        console.print(f"[red]Error:[/] Unknown action '{escape(action)}'")
        console.print("Available actions: list, set, status, delete")
        raise typer.Exit(1)

    if not service:
        console.print("[red]Error:[/] Service name required")
        console.print(f"Usage: [cyan]mdlingo keys {action} <service>[/]")
        console.print(f"Available services: {', '.join(SERVICES)}")
        raise typer.Exit(1)

    try:
        if action == "set":
            key = typer.prompt(f"Enter API key for {service}", hide_input=True)
            storage = km.set_key(service, key.strip())
            console.print(f"[green]✓[/] API key for {service} saved to {storage}")
            if storage == "file":
                console.print(f"[yellow]Note:[/] Key stored in {escape(str(km.key_file))}")

        elif action == "status":
            info = km.get_key_info(service)
            if info.is_set:
                console.print(f"[green]✓[/] API key for {service} is set")
                console.print(f"    Source: {info.source}")
                console.print(f"    Value: {info.masked_value}")
            else:
                console.print(f"[red]✗[/] No API key found for {service}")
                console.print(f"  Option 1: [cyan]mdlingo keys set {service}[/]")
                console.print(f"  Option 2: [cyan]export {env_var_for(service)}='your-key-here'[/]")

        elif km.delete_key(service):
            console.print(f"[green]✓[/] API key for {service} deleted")
        else:
            console.print(f"[yellow]⚠[/] No key found to delete for {service}")
    except MdlingoError as e:
        fail(e)


@app.command()
def info():
    """Show version, config and provider status."""
    console.print(f"[bold]mdlingo v{__version__}[/]\n")

    try:
        config = state.load_config()
    except MdlingoError as e:
        fail(e)

    if config is None:
        console.print("Config: [yellow]not found[/] (run [cyan]mdlingo init[/])")
    else:
        source = state.config_path or DEFAULT_CONFIG_FILE
        console.print(f"Config: {escape(str(source))}")
        console.print(f"  Provider: {config.provider}, model: {config.model}")
        if config.glossary:
            console.print(f"  Glossary: {escape(str(config.glossary))}")

    km = KeyManager()
    table = Table(title="Providers")
    table.add_column("Provider", style="cyan")
    table.add_column("Default model")
    table.add_column("Status")
    for provider, model in DEFAULT_MODELS.items():
        service = PROVIDER_KEYS[provider]
        if service is None:
            status = "[green]✓ No key needed[/] (local server)"
        else:
            try:
                has_key = km.get_key(service) is not None
            except MdlingoError as e:
                fail(e)
            status = "[green]✓ Key set[/]" if has_key else f"[yellow]⚠ No API key[/] ({env_var_for(service)})"
        table.add_row(provider, model, status)
    console.print(table)


if __name__ == "__main__":
    app()
