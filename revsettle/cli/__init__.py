"""
revsettle/cli/__init__.py

revsettle CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    revsettle = "revsettle.cli:cli"

Adding a new command:
    1. Create revsettle/cli/your_command.py with a @click.command()
    2. Import it here
    3. cli.add_command(your_command)
"""

import click

from revsettle.cli.quote import preview_redemption_command, quote_fee_command
from revsettle.cli.verify import verify_command
from revsettle.core.logs import configure_logging


@click.group()
@click.version_option(package_name="revsettle")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level for revsettle loggers (stderr).",
)
def cli(log_level: str) -> None:
    """
    revsettle: revenue attestation, bond and dispute tooling.

    \b
    Commands:
      verify              Verify a journal (chain, data hashes, signatures).
      quote-fee           Price one attestation under a YAML fee schedule.
      preview-redemption  Nominal and capped payment for one bond period.

    \b
    Quick start:
      revsettle verify .revsettle/journal.jsonl
      revsettle verify journal.jsonl --format json
      revsettle quote-fee --config settlement.yaml --tier 1 --volume 12
    """
    configure_logging(log_level)


cli.add_command(verify_command)
cli.add_command(quote_fee_command)
cli.add_command(preview_redemption_command)
