"""
revsettle/cli/quote.py

Offline pricing commands. Neither touches a journal or deploys contracts;
both run the same pure functions the registries use.

    revsettle quote-fee --config settlement.yaml --tier 1 --volume 12
    revsettle preview-redemption --structure hybrid --face-value 100000 \\
        --share-bps 1000 --min-payment 1000 --max-payment 10000 --revenue 50000

Exit codes:
    0  Quote produced
    1  Bond has no remaining value (preview-redemption only)
    2  Invalid config or arguments
"""

import json
import sys
from typing import Optional

import click

from revsettle.attestation.fees import volume_discount_bps
from revsettle.bonds.redemption import cap_to_headroom, nominal_payment
from revsettle.config import SettlementConfig
from revsettle.core.exceptions import FullyRedeemedError, ValidationError
from revsettle.core.models import BondStructure
from revsettle.core.validation import require_amount, require_bps, require_u32

_STRUCTURES = {
    "fixed":          BondStructure.FIXED,
    "revenue-linked": BondStructure.REVENUE_LINKED,
    "hybrid":         BondStructure.HYBRID,
}


def _fail(msg: str, fmt: str) -> None:
    if fmt == "json":
        click.echo(json.dumps({"error": msg}))
    else:
        click.echo(f"ERROR: {msg}", err=True)
    sys.exit(2)


# ── quote-fee ─────────────────────────────────────────────────────────────────

@click.command(name="quote-fee")
@click.option(
    "--config", "config_path",
    type=click.Path(exists=False, dir_okay=False),
    required=True,
    help="YAML settlement config with the fee schedule.",
)
@click.option("--tier", type=int, default=0, show_default=True, help="Business tier level.")
@click.option(
    "--volume", type=int, default=0, show_default=True,
    help="Attestations the business has already submitted.",
)
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
def quote_fee_command(config_path: str, tier: int, volume: int, fmt: str) -> None:
    """Price one attestation under the configured fee schedule."""
    try:
        config = SettlementConfig.from_yaml(config_path)
        require_u32("tier", tier)
        require_u32("volume", volume)
    except ValidationError as e:
        _fail(str(e), fmt)

    tier_bps = config.tiers.get(tier, 0)
    volume_bps = volume_discount_bps(volume, config.volume_brackets)
    fee = config.quote(tier=tier, volume=volume)

    if fmt == "json":
        click.echo(json.dumps({
            "fee":          fee,
            "base_fee":     config.base_fee,
            "enabled":      config.fees_enabled,
            "tier":         tier,
            "tier_bps":     tier_bps,
            "volume":       volume,
            "volume_bps":   volume_bps,
        }, indent=2))
        return

    if not config.fees_enabled:
        click.echo("fees disabled: 0")
        return
    click.echo(f"base fee      {config.base_fee}")
    click.echo(f"tier {tier:<8} -{tier_bps} bps")
    click.echo(f"volume {volume:<6} -{volume_bps} bps")
    click.echo(f"fee           {fee}")


# ── preview-redemption ────────────────────────────────────────────────────────

@click.command(name="preview-redemption")
@click.option(
    "--structure",
    type=click.Choice(sorted(_STRUCTURES), case_sensitive=False),
    required=True,
)
@click.option("--face-value", type=int, required=True)
@click.option("--share-bps", type=int, default=0, show_default=True)
@click.option("--min-payment", type=int, default=0, show_default=True)
@click.option("--max-payment", type=int, required=True)
@click.option("--revenue", type=int, required=True, help="Attested revenue for the period.")
@click.option("--redeemed", type=int, default=0, show_default=True, help="Total already redeemed.")
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
def preview_redemption_command(
    structure:   str,
    face_value:  int,
    share_bps:   int,
    min_payment: int,
    max_payment: int,
    revenue:     int,
    redeemed:    int,
    fmt:         str,
) -> None:
    """Nominal and face-value-capped payment for one bond period."""
    try:
        require_amount("face_value", face_value, positive=True)
        require_bps("share_bps", share_bps)
        require_amount("min_payment", min_payment)
        require_amount("max_payment", max_payment, positive=True)
        require_amount("revenue", revenue)
        require_amount("redeemed", redeemed)
        if max_payment < min_payment:
            raise ValidationError("max must be >= min", {"min": min_payment, "max": max_payment})
    except ValidationError as e:
        _fail(str(e), fmt)

    nominal = nominal_payment(
        structure=         _STRUCTURES[structure.lower()],
        revenue_share_bps= share_bps,
        min_payment=       min_payment,
        max_payment=       max_payment,
        attested_revenue=  revenue,
    )
    actual: Optional[int]
    try:
        actual = cap_to_headroom(nominal, face_value, redeemed)
    except FullyRedeemedError:
        actual = None

    if fmt == "json":
        click.echo(json.dumps({
            "structure":        structure.lower(),
            "nominal":          nominal,
            "payment":          actual,
            "fully_redeemed":   actual is None,
            "remaining_before": max(face_value - redeemed, 0),
            "remaining_after":  None if actual is None else face_value - redeemed - actual,
        }, indent=2))
    elif actual is None:
        click.echo("bond fully redeemed: no payment possible")
    else:
        click.echo(f"nominal       {nominal}")
        click.echo(f"payment       {actual}")
        click.echo(f"remaining     {face_value - redeemed - actual}")

    sys.exit(1 if actual is None else 0)
