"""
revsettle/cli/verify.py

revsettle verify — Journal Verification CLI
===========================================

Usage:
    revsettle verify <journal>                  Human output (default)
    revsettle verify <journal> --format json    Machine-readable JSON
    revsettle verify <journal> --quiet          Exit code only
    revsettle verify <journal> --no-color       Disable ANSI

Exit codes:
    0  Journal fully valid  (genesis + chain + data hashes + signatures)
    1  Journal has violations
    2  Error  (file missing, malformed line)
"""

import json
import sys
import time
from pathlib import Path

import click

from revsettle.core.exceptions import JournalError
from revsettle.ledger.journal import Journal, JournalVerification


# ── ANSI color ────────────────────────────────────────────────────────────────

class _Color:
    """
    Minimal ANSI color wrapper.
    Auto-disables when not a TTY or --no-color is passed.
    """
    _on: bool = True

    @classmethod
    def configure(cls, enabled: bool) -> None:
        cls._on = enabled and sys.stdout.isatty()

    @classmethod
    def green(cls, s: str) -> str:
        return f"\033[32m{s}\033[0m" if cls._on else s

    @classmethod
    def red(cls, s: str) -> str:
        return f"\033[31m{s}\033[0m" if cls._on else s

    @classmethod
    def yellow(cls, s: str) -> str:
        return f"\033[33m{s}\033[0m" if cls._on else s

    @classmethod
    def cyan(cls, s: str) -> str:
        return f"\033[36m{s}\033[0m" if cls._on else s

    @classmethod
    def bold(cls, s: str) -> str:
        return f"\033[1m{s}\033[0m" if cls._on else s

    @classmethod
    def dim(cls, s: str) -> str:
        return f"\033[2m{s}\033[0m" if cls._on else s


def _row_ok(label: str, value: str) -> str:
    return f"  {_Color.dim(f'{label:<16}')}  {_Color.green('OK  ')}  {value}"

def _row_fail(label: str, value: str) -> str:
    return f"  {_Color.dim(f'{label:<16}')}  {_Color.red('FAIL')}  {value}"

def _row_info(label: str, value: str) -> str:
    return f"  {_Color.dim(f'{label:<16}')}        {value}"


# ── CLI command ───────────────────────────────────────────────────────────────

@click.command(name="verify")
@click.argument("journal", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format: human (default) or json (CI/automation).",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress all output. Use exit code only (0=valid, 1=invalid, 2=error).",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable ANSI color output.",
)
def verify_command(journal: str, fmt: str, quiet: bool, no_color: bool) -> None:
    """
    Verify chain linkage, data hashes and signatures of a revsettle journal.

    JOURNAL is the path to a .jsonl journal file.

    \b
    Examples:
      revsettle verify .revsettle/journal.jsonl
      revsettle verify journal.jsonl --format json
      revsettle verify journal.jsonl --quiet && echo "clean"
    """
    _Color.configure(not no_color)
    journal_path = Path(journal)

    if not journal_path.exists():
        _emit_error(f"Journal not found: {journal}", fmt, quiet)
        sys.exit(2)

    t_start = time.perf_counter()
    try:
        loaded = Journal.load(journal_path)
        result = loaded.verify()
    except JournalError as e:
        _emit_error(str(e), fmt, quiet)
        sys.exit(2)
    t_elapsed = time.perf_counter() - t_start

    if quiet:
        sys.exit(0 if result.valid else 1)

    if fmt == "json":
        _output_json(result, loaded, journal_path, t_elapsed)
    else:
        _output_human(result, loaded, journal_path, t_elapsed)

    sys.exit(0 if result.valid else 1)


# ── Human output ──────────────────────────────────────────────────────────────

def _output_human(
    result:       JournalVerification,
    journal:      Journal,
    journal_path: Path,
    elapsed:      float,
) -> None:
    BAR_HEAVY = "═" * 68
    BAR_LIGHT = "─" * 68
    stats = journal.get_stats()

    click.echo()
    click.echo(_Color.bold(f"  {BAR_HEAVY}"))
    click.echo(_Color.bold(  "  revsettle  ·  Journal Verification"))
    click.echo(_Color.bold(f"  {BAR_HEAVY}"))
    click.echo()

    click.echo(_row_info("Journal", str(journal_path)))
    click.echo(_row_info("Entries", f"{result.total_entries:,}"))
    click.echo()

    by_type = {}
    for v in result.violations:
        by_type.setdefault(v.violation_type, []).append(v)

    links = by_type.get("genesis", []) + by_type.get("chain_break", [])
    if not links:
        click.echo(_row_ok("Chain", "intact, every entry links to its predecessor"))
    else:
        click.echo(_row_fail("Chain", _Color.red(f"{len(links)} break(s) detected")))

    data_v = by_type.get("data_hash", [])
    if not data_v:
        click.echo(_row_ok("Data hashes", "all entries match their data"))
    else:
        click.echo(_row_fail("Data hashes", _Color.red(f"{len(data_v)} mismatch(es)")))

    sig_v = by_type.get("invalid_signature", [])
    valid_sigs = result.total_entries - len(sig_v)
    if not sig_v:
        click.echo(_row_ok("Signatures", f"{valid_sigs:,} / {result.total_entries:,} valid"))
    else:
        click.echo(_row_fail(
            "Signatures",
            f"{valid_sigs:,} valid  " + _Color.red(f"{len(sig_v):,} INVALID"),
        ))
    click.echo()

    if stats["first_entry_time"]:
        click.echo(_row_info("First entry", stats["first_entry_time"]))
        click.echo(_row_info("Last entry", stats["last_entry_time"]))
    if result.total_entries:
        head = result.head_hash
        click.echo(_row_info("Head hash", _Color.cyan(head[:16] + "..." + head[-8:])))
    if stats["by_type"]:
        counts = "  ".join(
            f"{_Color.cyan(k)}: {v:,}" for k, v in sorted(stats["by_type"].items())
        )
        click.echo(_row_info("Operations", counts))
    click.echo(_row_info("Verified", f"{elapsed:.3f}s"))
    click.echo()

    if result.violations:
        click.echo(f"  {BAR_LIGHT}")
        for v in result.violations:
            type_col = _Color.yellow(f"{v.violation_type:<18}")
            click.echo(f"  {_Color.red(str(v.index)):>6}  {type_col}  {v.detail}")
        click.echo(f"  {BAR_LIGHT}")
        click.echo()

    click.echo(f"  {BAR_LIGHT}")
    if result.valid:
        click.echo(_Color.green(_Color.bold(
            "  VALID  ·  0 violations  ·  journal integrity confirmed"
        )))
    else:
        click.echo(_Color.red(_Color.bold(
            f"  INVALID  ·  {len(result.violations)} violation(s)  ·  journal integrity compromised"
        )))
    click.echo(f"  {BAR_LIGHT}")
    click.echo()


# ── JSON output ───────────────────────────────────────────────────────────────

def _output_json(
    result:       JournalVerification,
    journal:      Journal,
    journal_path: Path,
    elapsed:      float,
) -> None:
    out = {"revsettle_verify": {
        "journal":         str(journal_path),
        **result.to_dict(),
        "by_type":         journal.get_stats()["by_type"],
        "elapsed_seconds": round(elapsed, 3),
    }}
    click.echo(json.dumps(out, indent=2))


# ── Error output ──────────────────────────────────────────────────────────────

def _emit_error(msg: str, fmt: str, quiet: bool) -> None:
    """Emit error in the correct format. Never raises."""
    if quiet:
        return
    if fmt == "json":
        click.echo(json.dumps({
            "revsettle_verify": {
                "error": msg,
                "valid": False,
            }
        }))
    else:
        click.echo(_Color.red(f"\n  ERROR: {msg}\n"), err=True)
