"""Provider commands: status, config, providers, test-llm."""

import json
import sys
from datetime import datetime

import click
from rich.table import Table

from archlens.cli._helpers import console, status_mark
from archlens.llm import (
    LLMError,
    LLMProvider,
    create_config_for_provider,
    create_llm_client_from_env,
    environment_status,
    get_available_providers,
    is_provider_available,
)


@click.command("status")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def status(as_json: bool):
    """Show which LLM providers are configured and which one is in use.

    Example:
        archlens status
        archlens status --json
    """
    try:
        client = create_llm_client_from_env()
        available = get_available_providers()
    except LLMError as e:
        console.print(f"[red]LLM system error:[/red] {e}")
        sys.exit(1)

    current = client.get_config() if client else None
    report = {
        "status": "healthy" if client else "warning",
        "message": "LLM system is operational" if client else "No LLM provider configured",
        "available_providers": [p.value for p in available],
        "current_client": current,
        "provider_status": [
            {
                "provider": p.value,
                "available": p in available,
                "current": bool(current and current["provider"] == p.value),
            }
            for p in LLMProvider
        ],
        "timestamp": datetime.now().isoformat(),
    }

    if as_json:
        click.echo(json.dumps(report, indent=2))
        return

    color = "green" if client else "yellow"
    console.print(f"\n[bold {color}]{report['message']}[/bold {color}]\n")

    table = Table(show_header=True)
    table.add_column("Provider", style="cyan")
    table.add_column("Available", justify="center")
    table.add_column("Current", justify="center")
    for row in report["provider_status"]:
        table.add_row(row["provider"], status_mark(row["available"]), "●" if row["current"] else "")
    console.print(table)

    if current:
        console.print(f"\nModel: {current['model']}  Base URL: {current['base_url']}")


@click.command("config")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def config_cmd(as_json: bool):
    """Show the resolved configuration of every provider (secrets masked).

    Example:
        archlens config
    """
    details = []
    for provider in LLMProvider:
        available = is_provider_available(provider)
        details.append(
            {
                "provider": provider.value,
                "available": available,
                "config": create_config_for_provider(provider).to_dict(mask_secrets=True)
                if available
                else None,
            }
        )

    report = {
        "summary": {
            "total_providers": len(LLMProvider),
            "available_providers": sum(1 for d in details if d["available"]),
        },
        "provider_details": details,
        "environment_variables": environment_status(),
    }

    if as_json:
        click.echo(json.dumps(report, indent=2))
        return

    table = Table(show_header=True)
    table.add_column("Provider", style="cyan")
    table.add_column("Available", justify="center")
    table.add_column("Model")
    table.add_column("Base URL")
    table.add_column("API key")
    for d in details:
        cfg = d["config"] or {}
        table.add_row(
            d["provider"],
            status_mark(d["available"]),
            cfg.get("model") or "-",
            cfg.get("base_url") or "-",
            cfg.get("api_key") or "-",
        )
    console.print(table)
    console.print(
        f"\n{report['summary']['available_providers']}/{report['summary']['total_providers']} providers configured"
    )


@click.command("providers")
def providers():
    """List supported LLM providers."""
    for provider in LLMProvider:
        console.print(f"  {status_mark(is_provider_available(provider))} {provider.value}")


@click.command("test-llm")
@click.argument("prompt", default="Hello, are you working?")
@click.option("--timeout", "-t", type=float, help="Timeout in seconds")
@click.option("--max-tokens", default=100, type=int, help="Maximum response tokens")
def test_llm(prompt: str, timeout: float, max_tokens: int):
    """Send a short prompt to the configured provider.

    Example:
        archlens test-llm
        archlens test-llm "Summarise the AWS well-architected pillars" -t 30
    """
    try:
        client = create_llm_client_from_env()
    except LLMError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if client is None:
        console.print("[red]No LLM client could be created[/red]")
        sys.exit(1)

    cfg = client.get_config()
    console.print(f"Provider: [cyan]{cfg['provider']}[/cyan]  Model: {cfg['model']}")

    with console.status("[cyan]Waiting for response...[/cyan]"):
        try:
            response = client.call_llm(
                prompt, {"temperature": 0.1, "max_tokens": max_tokens, "timeout": timeout}
            )
        except LLMError as e:
            console.print(f"[red]LLM call failed:[/red] {e}")
            sys.exit(1)

    preview = response if len(response) <= 100 else response[:100] + "..."
    console.print(f"[green]✓[/green] {preview}")
