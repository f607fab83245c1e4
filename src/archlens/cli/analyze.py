"""Analysis commands: analyze, hash, embed."""

import json
import sys
from pathlib import Path

import click

from archlens.analysis import AnalysisParseError, ArchitectureAnalyzer, classify_file
from archlens.cache import AnalysisCache, generate_analysis_hash
from archlens.cli._helpers import analysis_table, console
from archlens.embeddings import EmbeddingsError, create_embeddings_client_from_env
from archlens.llm import LLMError


def _metadata_options(func):
    func = click.option("--version", "app_version", help="Application version")(func)
    func = click.option("--environment", "-e", help="Deployment environment")(func)
    func = click.option("--component", "component_name", help="Component name")(func)
    func = click.option("--app-id", help="Application identifier")(func)
    return func


@click.command("analyze")
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@_metadata_options
@click.option("--no-cache", is_flag=True, help="Always call the LLM")
@click.option("--output", "-o", type=click.Path(), help="Write results to a JSON file")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def analyze(
    files: tuple,
    app_id: str,
    component_name: str,
    environment: str,
    app_version: str,
    no_cache: bool,
    output: str,
    as_json: bool,
):
    """Analyze architecture diagrams or IaC files.

    Identical files submitted with identical metadata are analyzed once per
    run; repeats are served from the analysis cache.

    Examples:
        archlens analyze ./diagram.png --app-id payments
        archlens analyze main.tf network.tf -e prod -o review.json
    """
    analyzer = ArchitectureAnalyzer(cache=AnalysisCache())
    results = []

    for file in files:
        with console.status(f"[cyan]Analyzing {file}...[/cyan]"):
            try:
                result = analyzer.analyze_file(
                    file,
                    app_id=app_id,
                    component_name=component_name,
                    environment=environment,
                    version=app_version,
                    use_cache=not no_cache,
                )
            except (LLMError, AnalysisParseError) as e:
                console.print(f"[red]Error analyzing {file}:[/red] {e}")
                sys.exit(1)
        results.append(result)

        if not as_json:
            console.print(analysis_table(result))
            console.print(f"[dim]{result.get('summary', '')}[/dim]\n")

    if as_json:
        click.echo(json.dumps(results if len(results) > 1 else results[0], indent=2, ensure_ascii=False))

    if output:
        Path(output).write_text(json.dumps(results, indent=2, ensure_ascii=False), encoding="utf-8")
        console.print(f"[green]✓ Results written to {output}[/green]")

    stats = analyzer.cache.get_stats()
    hits = sum(1 for r in results if r.get("cached"))
    console.print(f"[dim]Cache: {stats['size']} entries, {hits} hit(s) this run[/dim]")


@click.command("hash")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@_metadata_options
def hash_cmd(file: str, app_id: str, component_name: str, environment: str, app_version: str):
    """Print the cache key for a file and its metadata.

    Example:
        archlens hash main.tf --app-id payments -e prod
    """
    path = Path(file)
    if classify_file(path.name) == "image":
        content = path.read_bytes()
    else:
        content = path.read_text(encoding="utf-8", errors="replace")
    click.echo(generate_analysis_hash(content, app_id, component_name, environment, app_version))


@click.command("embed")
@click.argument("texts", nargs=-1, required=True)
@click.option("--timeout", "-t", type=float, help="Overall timeout in seconds")
def embed(texts: tuple, timeout: float):
    """Generate embeddings with the configured EMBEDDINGS_* provider.

    Example:
        archlens embed "three-tier web app on AWS" "serverless ETL on GCP"
    """
    client = create_embeddings_client_from_env()
    if client is None:
        console.print("[red]No embeddings client available - check EMBEDDINGS_* variables[/red]")
        sys.exit(1)

    try:
        if len(texts) == 1:
            vectors = [client.generate_embedding(texts[0], timeout=timeout)]
        else:
            vectors = client.generate_batch_embeddings(list(texts), timeout=timeout)
    except EmbeddingsError as e:
        console.print(f"[red]Embedding failed:[/red] {e}")
        sys.exit(1)

    for text, vector in zip(texts, vectors):
        preview = ", ".join(f"{v:.4f}" for v in vector[:5])
        console.print(f"[cyan]{text[:40]}[/cyan] dim={len(vector)} [{preview}, ...]")
