"""
tests/test_cli.py

revsettle CLI.

    verify              exit 0 clean, 1 violations, 2 missing/malformed
    quote-fee           prices one attestation from a YAML schedule
    preview-redemption  nominal and capped payment; exit 1 when nothing is left
"""

import json

import pytest
from click.testing import CliRunner

from revsettle.cli import cli
from revsettle.ledger.journal import Journal


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def journal_file(tmp_path, admin):
    path = tmp_path / "journal.jsonl"
    journal = Journal(signing_key=admin, path=path)
    for i in range(3):
        journal.append("op", {"i": i})
    return path


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "settlement.yaml"
    path.write_text(
        "fees: {base_fee: 1000, enabled: true}\n"
        "tiers: {1: 2000}\n"
        "volume_brackets:\n"
        "  - {threshold: 10, discount_bps: 500}\n"
    )
    return path


# ─────────────────────────────────────────────────────────────
# verify
# ─────────────────────────────────────────────────────────────

class TestVerify:

    def test_clean_journal(self, runner, journal_file):
        result = runner.invoke(cli, ["verify", str(journal_file), "--no-color"])
        assert result.exit_code == 0
        assert "VALID" in result.output

    def test_json_output(self, runner, journal_file):
        result = runner.invoke(cli, ["verify", str(journal_file), "--format", "json"])
        assert result.exit_code == 0
        report = json.loads(result.output)["revsettle_verify"]
        assert report["valid"] is True
        assert report["total_entries"] == 3
        assert report["by_type"] == {"op": 3}

    def test_tampered_journal(self, runner, journal_file):
        lines = journal_file.read_text().splitlines()
        entry = json.loads(lines[1])
        entry["data"]["i"] = 42
        lines[1] = json.dumps(entry)
        journal_file.write_text("\n".join(lines) + "\n")

        result = runner.invoke(cli, ["verify", str(journal_file), "--format", "json"])
        assert result.exit_code == 1
        report = json.loads(result.output)["revsettle_verify"]
        assert report["valid"] is False
        assert report["violations"][0]["violation_type"] == "data_hash"

    def test_quiet(self, runner, journal_file):
        result = runner.invoke(cli, ["verify", str(journal_file), "--quiet"])
        assert result.exit_code == 0
        assert result.output == ""

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["verify", str(tmp_path / "nope.jsonl"), "--format", "json"])
        assert result.exit_code == 2
        assert "error" in json.loads(result.output)["revsettle_verify"]

    def test_malformed_file(self, runner, tmp_path):
        path = tmp_path / "bad.jsonl"
        path.write_text("garbage\n")
        result = runner.invoke(cli, ["verify", str(path), "--quiet"])
        assert result.exit_code == 2

    @pytest.mark.parametrize("line", ["[1, 2]", "42", "\"entry\"", "null"])
    def test_non_object_line(self, runner, tmp_path, line):
        path = tmp_path / "bad.jsonl"
        path.write_text(line + "\n")
        result = runner.invoke(cli, ["verify", str(path), "--format", "json"])
        assert result.exit_code == 2
        assert "error" in json.loads(result.output)["revsettle_verify"]


# ─────────────────────────────────────────────────────────────
# quote-fee
# ─────────────────────────────────────────────────────────────

class TestQuoteFee:

    def test_base_quote(self, runner, config_file):
        result = runner.invoke(cli, ["quote-fee", "--config", str(config_file), "--format", "json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["fee"] == 1000

    def test_tier_and_volume(self, runner, config_file):
        result = runner.invoke(cli, [
            "quote-fee", "--config", str(config_file),
            "--tier", "1", "--volume", "10", "--format", "json",
        ])
        quote = json.loads(result.output)
        assert quote["fee"] == 750
        assert (quote["tier_bps"], quote["volume_bps"]) == (2000, 500)

    def test_human_output(self, runner, config_file):
        result = runner.invoke(cli, ["quote-fee", "--config", str(config_file)])
        assert result.exit_code == 0
        assert "1000" in result.output

    def test_invalid_config(self, runner, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("fees: {base_fee: -5}\n")
        result = runner.invoke(cli, ["quote-fee", "--config", str(path)])
        assert result.exit_code == 2

    @pytest.mark.parametrize("body", [
        "tiers: {gold: 100}\n",
        "logging: debug\n",
        "journal: {path: 5}\n",
    ])
    def test_malformed_config_exits_2(self, runner, tmp_path, body):
        path = tmp_path / "bad.yaml"
        path.write_text(body)
        result = runner.invoke(cli, ["quote-fee", "--config", str(path), "--format", "json"])
        assert result.exit_code == 2
        assert "error" in json.loads(result.output)


# ─────────────────────────────────────────────────────────────
# preview-redemption
# ─────────────────────────────────────────────────────────────

def preview(runner, *extra):
    return runner.invoke(cli, ["preview-redemption", "--format", "json", *extra])


class TestPreviewRedemption:

    def test_revenue_linked(self, runner):
        result = preview(
            runner, "--structure", "revenue-linked", "--face-value", "10000000",
            "--share-bps", "1000", "--min-payment", "100000", "--max-payment", "1000000",
            "--revenue", "15000000",
        )
        assert result.exit_code == 0
        out = json.loads(result.output)
        assert (out["nominal"], out["payment"]) == (1_000_000, 1_000_000)

    def test_hybrid_capped_by_headroom(self, runner):
        result = preview(
            runner, "--structure", "hybrid", "--face-value", "1000000",
            "--share-bps", "500", "--min-payment", "200000", "--max-payment", "800000",
            "--revenue", "10000000", "--redeemed", "900000",
        )
        out = json.loads(result.output)
        assert out["nominal"] == 700_000
        assert out["payment"] == 100_000
        assert out["remaining_after"] == 0

    def test_fully_redeemed(self, runner):
        result = preview(
            runner, "--structure", "fixed", "--face-value", "500",
            "--max-payment", "100", "--min-payment", "100",
            "--revenue", "0", "--redeemed", "500",
        )
        assert result.exit_code == 1
        assert json.loads(result.output)["fully_redeemed"] is True

    def test_min_above_max_rejected(self, runner):
        result = preview(
            runner, "--structure", "fixed", "--face-value", "500",
            "--min-payment", "200", "--max-payment", "100", "--revenue", "0",
        )
        assert result.exit_code == 2
