"""
Lookout CLI - run act, extract and observe against a live page.
"""

import json
import logging

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.text import Text

from lookout import __version__

console = Console()

VISION_CHOICES = {"true": True, "false": False, "fallback": "fallback"}


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def browser_options(func):
    """Options shared by every command that opens a browser."""
    options = [
        click.option('--headless/--headed', default=False, help='Run browser in headless mode'),
        click.option('--brain', default='auto', help='Intelligence Strategy: auto, heuristic, cloud, local'),
        click.option('--model', default=None, help='Specific model name (e.g. gpt-4o) or path to a .gguf file'),
        click.option('--max-steps', default=50, type=int, help='Maximum flattening passes per operation'),
        click.option('--record', is_flag=True, help='Write a flight record and HTML report'),
        click.option('--report-dir', default='./lookout_reports', help='Report output directory'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_agent(headless, brain, model, max_steps, record, report_dir, **extra):
    from lookout import LookoutOrchestrator

    return LookoutOrchestrator(
        headless=headless,
        brain_type=brain,
        model_name=model,
        max_steps=max_steps,
        record=record,
        report_dir=report_dir,
        **extra,
    )


def _banner(title: str, url: str, text: str, brain: str) -> None:
    console.print(Panel.fit(
        f"[bold blue]🔭 Lookout {title}[/bold blue]\n"
        f"[dim]Natural-language browser automation[/dim]",
        border_style="blue"
    ))
    console.print(f"\n[bold]Target:[/bold] {escape(url)}")
    console.print(f"[bold]{title}:[/bold] {escape(text)}")
    console.print(f"[bold]Brain:[/bold] {escape(brain.upper()) if brain else 'AUTO'}")
    console.print()


@click.group()
@click.version_option(version=__version__, prog_name="lookout")
@click.option('-v', '--verbose', count=True, help='Show INFO logs (-v) or DEBUG logs (-vv)')
def cli(verbose):
    """🔭 Lookout - Natural-language browser automation

    Flatten pages into indexed text and let a model act on them.
    """
    load_dotenv()
    _configure_logging(verbose)


@cli.command()
@click.argument('url')
@click.argument('goal')
@click.option('--vision', default='fallback', type=click.Choice(list(VISION_CHOICES)),
              help='Send screenshots to the model: always, never, or only after every chunk came back empty')
@click.option('--verify-vision/--verify-text', default=True,
              help='Verify completion from a full-page screenshot or from the flattened page')
@browser_options
def act(url, goal, vision, verify_vision, headless, brain, model, max_steps, record, report_dir):
    """
    Perform an action described in plain language.

    \b
    Examples:

        lookout act "https://example.com" "click the More information link"

        lookout act "https://duckduckgo.com" "search for 'selenium' and press enter" --brain cloud
    """
    _banner("Act", url, goal, brain)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Initializing agent...", total=None)
        agent = _build_agent(
            headless, brain, model, max_steps, record, report_dir,
            verifier_use_vision=verify_vision,
        )
        try:
            agent.goto(url)
            progress.update(task, description="Acting...")
            result = agent.act(goal, use_vision=VISION_CHOICES[vision])
        finally:
            agent.close()

    if result.success:
        console.print("\n[bold green]✅ Action completed[/bold green]")
    else:
        console.print("\n[bold red]❌ Action failed[/bold red]")
    console.print(result.message, markup=False, highlight=False)

    if result.steps:
        console.print(Panel(Text(result.steps.strip()), title="Steps", border_style="dim"))
    if agent.last_report_path:
        console.print(f"[dim]Report: {escape(agent.last_report_path)}[/dim]")

    if not result.success:
        raise SystemExit(1)


@cli.command()
@click.argument('url')
@click.argument('instruction')
@click.option('--schema', 'schema_path', required=True, type=click.Path(exists=True, dir_okay=False),
              help='JSON schema file describing the data to extract')
@click.option('--output', type=click.Path(dir_okay=False), default=None, help='Write the result to this file')
@browser_options
def extract(url, instruction, schema_path, output, headless, brain, model, max_steps, record, report_dir):
    """
    Extract structured data from a page.

    \b
    Example:

        lookout extract "https://news.ycombinator.com" "the top story titles" --schema stories.json
    """
    with open(schema_path, encoding="utf-8") as f:
        schema = json.load(f)

    _banner("Extract", url, instruction, brain)

    agent = _build_agent(headless, brain, model, max_steps, record, report_dir)
    try:
        with console.status("Extracting..."):
            agent.goto(url)
            result = agent.extract(instruction, schema)
    finally:
        agent.close()

    payload = json.dumps(result.data, indent=2, ensure_ascii=False)
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(payload)
        console.print(f"[dim]Written to {escape(output)}[/dim]")
    console.print_json(payload)
    console.print(f"[dim]{escape(result.message)} ({len(result.chunks_seen)} chunk(s) read)[/dim]")

    if not result.success:
        raise SystemExit(1)


@cli.command()
@click.argument('url')
@click.argument('description')
@browser_options
def observe(url, description, headless, brain, model, max_steps, record, report_dir):
    """
    Find the element matching a description and print its XPath.

    \b
    Example:

        lookout observe "https://example.com" "the main heading"
    """
    agent = _build_agent(headless, brain, model, max_steps, record, report_dir)
    try:
        with console.status("Observing..."):
            agent.goto(url)
            address = agent.observe(description)
    finally:
        agent.close()

    if address is None:
        console.print(f"[yellow]⚠️ No element matches: {escape(description)}[/yellow]")
        raise SystemExit(1)
    console.print(f"[green]✅ {escape(address)}[/green]")


@cli.command()
@click.argument('url')
@click.option('--chunk', type=int, default=None, help='Flatten this chunk instead of the current one')
@click.option('--all', 'all_chunks', is_flag=True, help='Flatten the whole page into one index space')
@click.option('--headless/--headed', default=True, help='Run browser in headless mode')
def flatten(url, chunk, all_chunks, headless):
    """
    Print the indexed text the model would see for a page.
    """
    from lookout import LookoutOrchestrator

    agent = LookoutOrchestrator(headless=headless, brain_type="heuristic")
    try:
        agent.goto(url)
        flat = agent.flatten_all() if all_chunks else agent.flatten(chunk)
    finally:
        agent.close()

    console.print(flat.text, markup=False, highlight=False, end="")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Chunk", justify="right")
    table.add_column("Total Chunks", justify="right")
    table.add_column("Candidates", justify="right")
    table.add_row(
        "all" if all_chunks else str(flat.chunk),
        str(flat.total_chunks),
        str(len(flat.addresses)),
    )
    console.print(table)


@cli.command()
def doctor():
    """
    Check system health and dependencies.

    Verifies that the browser stack is installed and shows which brains
    this machine can run.
    """
    from lookout.core.system_profiler import SystemProfiler

    console.print(Panel.fit(
        f"[bold cyan]🩺 Lookout Doctor[/bold cyan]\n"
        f"[dim]System Health Check[/dim]",
        border_style="cyan"
    ))
    console.print()

    dependencies = [
        ("selenium", "Core - WebDriver", True),
        ("pydantic", "Core - Extraction Schemas", True),
        ("openai", "Intelligence - Cloud Brain (OpenAI)", False),
        ("anthropic", "Intelligence - Cloud Brain (Anthropic)", False),
        ("llama_cpp", "Intelligence - Local Brain", False),
    ]

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Package", style="blue")
    table.add_column("Role", style="dim")
    table.add_column("Status", justify="center")

    core_ok = True
    for package, role, required in dependencies:
        try:
            __import__(package)
            status = "[green]✅ Installed[/green]"
        except ImportError:
            status = "[red]❌ Missing[/red]" if required else "[yellow]⚠️ Missing[/yellow]"
            core_ok = core_ok and not required

        table.add_row(package.replace("_", "-"), role, status)

    console.print(table)

    profile = SystemProfiler.get_profile()
    console.print(
        f"\n[bold]RAM:[/bold] {profile.available_ram_gb}/{profile.total_ram_gb}GB free  "
        f"[bold]CPUs:[/bold] {profile.cpu_count}  "
        f"[bold]Cloud keys:[/bold] {'✅' if profile.has_cloud_key else '❌'}"
    )
    console.print(f"[bold]Auto brain:[/bold] {SystemProfiler.recommend_brain_type(profile)}")
    console.print()

    if core_ok:
        console.print("[bold green]✅ Core dependencies installed! Lookout is ready.[/bold green]")
    else:
        console.print("[red]❌ Core dependencies are missing.[/red]")
        console.print("[dim]Install with: pip install lookout[cloud,local][/dim]")


@cli.command()
def version():
    """Show version information."""
    console.print(f"Lookout v{__version__}")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
