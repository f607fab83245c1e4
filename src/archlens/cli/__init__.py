"""Command-line interface for ArchLens."""

import click

from archlens import __version__
from archlens.cli._helpers import configure_logging, console  # noqa: F401
from archlens.config import Settings, use_settings


# Main CLI group
@click.group()
@click.version_option(version=__version__, prog_name="archlens")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML file of environment variable fallbacks",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def main(config_path: str, verbose: bool):
    """ArchLens - LLM review of cloud architecture diagrams and IaC files."""
    configure_logging(verbose)
    if config_path:
        use_settings(Settings.from_yaml(config_path))


# --- Register commands from submodules ---

# llm.py
from archlens.cli.llm import config_cmd, providers, status, test_llm  # noqa: E402

main.add_command(status)
main.add_command(config_cmd)
main.add_command(providers)
main.add_command(test_llm)

# analyze.py
from archlens.cli.analyze import analyze, embed, hash_cmd  # noqa: E402

main.add_command(analyze)
main.add_command(hash_cmd)
main.add_command(embed)
