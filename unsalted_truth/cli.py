"""
Command-line interface for Unsalted Truth.

Uses Typer to browse category feeds, translate them, and produce a
persona-tailored breakdown or narration of a single story. Supports loading
.env files for API key configuration.
"""

from __future__ import annotations

import asyncio
import base64
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
import typer

from .config import AppConfig, load_config
from .core.catalog import CATEGORIES, DEFAULT_CATEGORY, SOURCE_LANGUAGE, SUPPORTED_LANGUAGES
from .core.types import AnalysisBreakdown, Citation, Persona
from .fetch.orchestrator import FALLBACK_SOURCE
from .llm.providers.factory import create_provider
from .llm.tracing import flush, setup_langfuse
from .session.audio import WavFileOutput
from .session.controller import FeedController
from .utils.logging import setup_llm_logger, setup_logging

app = typer.Typer(add_completion=False)
console = Console()

CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Optional YAML config file.")
CATEGORY_OPTION = typer.Option(DEFAULT_CATEGORY, "--category", help="Feed category id.")
LANGUAGE_OPTION = typer.Option(SOURCE_LANGUAGE, "--language", "-l", help="Display language.")
API_KEY_OPTION = typer.Option(
    None,
    "--api-key",
    envvar="GOOGLE_API_KEY",
    help="Override provider API key (or set GOOGLE_API_KEY / .env).",
)
LOG_LEVEL_OPTION = typer.Option(None, "--log-level", help="Logging level.")


@app.command()
def categories() -> None:
    """List the available feed categories and display languages."""
    table = Table(title="Categories")
    table.add_column("ID")
    table.add_column("Label")
    for category in CATEGORIES:
        table.add_row(category.id, category.label)
    console.print(table)
    console.print("Languages: " + ", ".join(SUPPORTED_LANGUAGES))


@app.command()
def feed(
    category: str = CATEGORY_OPTION,
    language: str = LANGUAGE_OPTION,
    config: Path | None = CONFIG_OPTION,
    api_key: str | None = API_KEY_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Print the headlines of a category, translated when requested."""
    cfg = _prepare(config, api_key, log_level)
    controller = _build_controller(cfg)

    async def _run():
        await controller.select_category(category)
        return await controller.set_language(language)

    items = _run_async(_run())
    table = Table(title=f"{category} ({language})")
    table.add_column("#", justify="right")
    table.add_column("Headline")
    table.add_column("Source")
    for index, item in enumerate(items):
        table.add_row(str(index), item.title, item.source)
    console.print(table)
    if controller.orchestrator.last_source == FALLBACK_SOURCE:
        console.print("[yellow]All feed proxies failed; showing demo items.[/yellow]")
    flush()


@app.command()
def analyze(
    index: int = typer.Option(0, "--index", "-n", help="Position of the story in the feed."),
    category: str = CATEGORY_OPTION,
    language: str = LANGUAGE_OPTION,
    role: str = typer.Option("Citizen", "--role", help="Reader role for the persona."),
    location: str = typer.Option("USA", "--location", help="Reader location for the persona."),
    image_out: Path | None = typer.Option(None, "--image-out", help="Save the illustration here."),
    config: Path | None = CONFIG_OPTION,
    api_key: str | None = API_KEY_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Produce a persona-tailored breakdown of one story."""
    cfg = _prepare(config, api_key, log_level)
    if image_out is None:
        cfg.analysis.illustrations = False
    controller = _build_controller(cfg)
    controller.set_persona(Persona(role=role, location=location))

    async def _run():
        session = await _open_session(controller, category, language, index)
        await session.request_analysis()
        await session.wait_idle()
        return session

    session = _run_async(_run())
    state = session.state
    if state.breakdown is None:
        flush()
        raise typer.Exit(code=1)

    console.print(f"[bold]{session.item.title}[/bold]")
    _print_breakdown(state.breakdown, list(state.citations))
    if image_out is not None:
        if state.illustration:
            image_out.write_bytes(_decode_data_uri(state.illustration))
            console.print(f"Illustration saved: {image_out}")
        else:
            console.print("[yellow]No illustration was generated.[/yellow]")
    flush()


@app.command()
def speak(
    index: int = typer.Option(0, "--index", "-n", help="Position of the story in the feed."),
    category: str = CATEGORY_OPTION,
    language: str = LANGUAGE_OPTION,
    out: Path = typer.Option(Path("narration.wav"), "--out", "-o", help="WAV file to write."),
    config: Path | None = CONFIG_OPTION,
    api_key: str | None = API_KEY_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Narrate the breakdown of one story into a WAV file."""
    cfg = _prepare(config, api_key, log_level)
    cfg.analysis.illustrations = False
    controller = _build_controller(cfg)
    controller.output_factory = lambda item: WavFileOutput(out)

    async def _run():
        session = await _open_session(controller, category, language, index)
        await session.request_analysis()
        if session.state.breakdown is not None:
            await session.handle_speech()
        return session

    session = _run_async(_run())
    if session.audio.buffer is None:
        flush()
        raise typer.Exit(code=1)
    console.print(f"Narration written: {out} ({session.audio.buffer.duration_seconds:.1f}s)")
    flush()


def _prepare(config: Path | None, api_key: str | None, log_level: str | None) -> AppConfig:
    # Load environment variables from .env if available
    load_dotenv()
    cfg = load_config(str(config) if config else None)
    if api_key:
        cfg.provider.api_key = api_key
    if log_level:
        cfg.logging.level = log_level
    setup_logging(cfg.logging)
    setup_langfuse(cfg.langfuse)
    return cfg


def _build_controller(cfg: AppConfig) -> FeedController:
    llm_logger = setup_llm_logger(cfg.logging)
    try:
        provider = create_provider(cfg.provider, cfg.logging, llm_logger)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2) from exc
    return FeedController(cfg, provider, notifier=lambda message: console.print(f"[red]{message}[/red]"))


async def _open_session(controller: FeedController, category: str, language: str, index: int):
    await controller.select_category(category)
    items = await controller.set_language(language)
    if not 0 <= index < len(items):
        raise typer.BadParameter(f"Index {index} out of range (0-{len(items) - 1})", param_hint="--index")
    return controller.session_for(items[index])


def _run_async(coro):
    try:
        return asyncio.run(coro)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2) from exc


def _print_breakdown(breakdown: AnalysisBreakdown, citations: list[Citation]) -> None:
    console.print(f"[italic]{breakdown.why}[/italic]")
    sections = [
        ("What happened", breakdown.what),
        ("Who is affected", breakdown.who),
        ("Past", breakdown.past_references),
        ("Present", breakdown.present_consequences),
        ("Future", breakdown.future_impact),
    ]
    for heading, bullets in sections:
        if not bullets:
            continue
        console.print(f"\n[bold]{heading}[/bold]")
        for bullet in bullets:
            console.print(f"  - {bullet}")

    console.print(f"\n[bold]Audience:[/bold] {breakdown.audience}")
    console.print(f"[bold]{breakdown.advice.advice}:[/bold] {breakdown.advice.reasoning}")
    if breakdown.bias.label or breakdown.bias.detected_bias:
        console.print(f"[bold]Bias ({breakdown.bias.label}):[/bold] {breakdown.bias.detected_bias}")
    if breakdown.bias.missing_perspectives:
        console.print("Missing perspectives: " + "; ".join(breakdown.bias.missing_perspectives))
    console.print(f"[bold]Emotional load:[/bold] {breakdown.emotional_load.score}/100")
    if breakdown.emotional_load.warning:
        console.print(f"[yellow]{breakdown.emotional_load.warning}[/yellow]")
    if breakdown.geolocation is not None:
        geo = breakdown.geolocation
        console.print(f"[bold]Location:[/bold] {geo.label} ({geo.lat:.3f}, {geo.lng:.3f})")
    if citations:
        console.print("\n[bold]Sources[/bold]")
        for citation in citations:
            console.print(f"  - {citation.title}: {citation.uri}")


def _decode_data_uri(uri: str) -> bytes:
    _, _, encoded = uri.partition(";base64,")
    return base64.b64decode(encoded)


if __name__ == "__main__":
    app()
