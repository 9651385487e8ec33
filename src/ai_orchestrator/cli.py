import asyncio
import json

import click

from . import __version__
from .config import get_settings
from .exceptions import OrchestratorError
from .models import GenerationOptions, Modality
from .orchestrator import ProviderOrchestrator, build_orchestrator
from .providers import DEFAULT_CATALOGUE
from .providers.mock_provider import mock_fleet
from .telemetry import setup_logging


def get_version():
    return __version__


def make_orchestrator(mock: bool = False) -> ProviderOrchestrator:
    settings = get_settings()
    setup_logging(settings=settings)
    adapters = mock_fleet([entry.spec.name for entry in DEFAULT_CATALOGUE]) if mock else None
    return build_orchestrator(settings, adapters=adapters)


async def run_generate(orchestrator, prompt, options, modality):
    async with orchestrator:
        return await orchestrator.generate(prompt, options, modality)


async def run_view(orchestrator, view):
    async with orchestrator:
        return view(orchestrator)


@click.group()
def cli():
    pass


@cli.command()
@click.option("--format", default="text", type=click.Choice(["text", "json"]))
def version(format):
    if format == "json":
        click.echo(json.dumps({"version": get_version()}))
    else:
        click.echo(f"v{get_version()}")


@cli.command()
@click.option("--format", default="text", type=click.Choice(["text", "json"]))
@click.option("--mock", is_flag=True, help="Use offline mock adapters for every provider.")
def providers(format, mock):
    """Show provider availability and statistics."""
    stats = asyncio.run(run_view(make_orchestrator(mock), ProviderOrchestrator.get_provider_stats))
    if format == "json":
        click.echo(json.dumps([s.model_dump(mode="json") for s in stats], indent=2))
        return

    if not stats:
        click.echo("No providers configured. Set at least one *_API_KEY.")
        return
    click.echo(f"{'PROVIDER':<12} {'MODALITY':<11} {'AVAILABLE':<10} {'WINDOW':<12} {'SUCCESS':>8}")
    for s in stats:
        window = f"{s.requests_in_current_window}/{s.rate_limit.max_requests}"
        click.echo(
            f"{s.name:<12} {s.modality.value:<11} {str(s.available).lower():<10} "
            f"{window:<12} {s.success_rate:>7.1f}%"
        )


@cli.command()
@click.option("--mock", is_flag=True, help="Use offline mock adapters for every provider.")
def models(mock):
    """List the models each configured provider advertises."""
    entries = asyncio.run(run_view(make_orchestrator(mock), ProviderOrchestrator.list_available_models))
    for entry in entries:
        click.echo(f"{entry.provider}: {', '.join(entry.models) or '-'}")


@cli.command()
@click.argument("prompt")
@click.option(
    "--modality",
    default=Modality.TEXT.value,
    type=click.Choice([m.value for m in Modality]),
)
@click.option("--model", default=None)
@click.option("--max-tokens", default=None, type=int)
@click.option("--temperature", default=None, type=float)
@click.option("--system", "system_prompt", default=None)
@click.option("--output", type=click.Path(dir_okay=False, writable=True), default=None,
              help="Write binary content (images, audio) to this file.")
@click.option("--mock", is_flag=True, help="Use offline mock adapters for every provider.")
def generate(prompt, modality, model, max_tokens, temperature, system_prompt, output, mock):
    """Generate content for PROMPT with automatic provider fallback."""
    options = GenerationOptions(
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        system_prompt=system_prompt,
    )
    orchestrator = make_orchestrator(mock)
    try:
        response = asyncio.run(run_generate(orchestrator, prompt, options, Modality(modality)))
    except OrchestratorError as e:
        raise click.ClickException(e.message) from e

    if response.is_binary:
        if not output:
            raise click.ClickException(
                f"{response.provider} returned {len(response.content)} bytes; use --output"
            )
        with open(output, "wb") as f:
            f.write(response.content)
        click.echo(f"[{response.provider}] wrote {len(response.content)} bytes to {output}")
    else:
        click.echo(f"[{response.provider}] {response.content}")


if __name__ == "__main__":
    cli()
