"""
tests/test_journal.py

Signed, hash-chained journal.

Properties covered:
    First entry links to GENESIS_HASH; each later entry links to the
    hash of its predecessor's chain fields
    Entries persist as JSONL and re-verify after reload
    Editing data, a chain field or a signature is detected
    A journal loaded read-only cannot be appended to
    Reopening a tampered file for writing fails
"""

import json

import pytest

from revsettle.core.canonical import canonical_hash
from revsettle.core.env import Env
from revsettle.core.exceptions import JournalError
from revsettle.ledger.journal import GENESIS_HASH, Journal
from revsettle.ledger.token import TokenLedger


@pytest.fixture
def journal_path(tmp_path):
    return tmp_path / "journal.jsonl"


def fill(journal, n=3):
    for i in range(n):
        journal.append("op", {"i": i})
    return journal


def rewrite(path, mutate):
    lines = [json.loads(l) for l in path.read_text().splitlines() if l.strip()]
    mutate(lines)
    path.write_text("".join(json.dumps(l) + "\n" for l in lines))


class TestChain:

    def test_genesis_link(self, admin):
        journal = fill(Journal(signing_key=admin), 1)
        assert journal.entries[0].previous_hash == GENESIS_HASH

    def test_links_to_predecessor(self, admin):
        journal = fill(Journal(signing_key=admin), 3)
        for prev, entry in zip(journal.entries, journal.entries[1:]):
            assert entry.previous_hash == canonical_hash(prev.to_chain_dict())
        assert journal.head_hash() == journal.entries[-1].compute_hash()

    def test_clean_journal_verifies(self, admin):
        result = fill(Journal(signing_key=admin), 5).verify()
        assert result.valid
        assert result.total_entries == 5

    def test_empty_journal(self, admin):
        result = Journal(signing_key=admin).verify()
        assert result.valid
        assert result.head_hash == GENESIS_HASH

    def test_in_memory_tamper_detected(self, admin):
        journal = fill(Journal(signing_key=admin), 3)
        journal.entries[1].data["i"] = 99
        result = journal.verify()
        assert [v.violation_type for v in result.violations] == ["data_hash"]
        assert result.violations[0].index == 1


class TestPersistence:

    def test_reload_verifies(self, admin, journal_path):
        fill(Journal(signing_key=admin, path=journal_path), 4)
        loaded = Journal.load(journal_path)
        assert len(loaded.entries) == 4
        assert loaded.verify().valid

    def test_reopen_continues_chain(self, admin, journal_path):
        fill(Journal(signing_key=admin, path=journal_path), 2)
        reopened = Journal(signing_key=admin, path=journal_path)
        reopened.append("op", {"i": 2})
        assert Journal.load(journal_path).verify().valid
        assert len(Journal.load(journal_path).entries) == 3

    def test_edited_data_detected(self, admin, journal_path):
        fill(Journal(signing_key=admin, path=journal_path), 3)

        def mutate(lines):
            lines[1]["data"]["i"] = 1000
        rewrite(journal_path, mutate)

        result = Journal.load(journal_path).verify()
        assert not result.valid
        assert {v.violation_type for v in result.violations} == {"data_hash"}

    def test_edited_chain_field_detected(self, admin, journal_path):
        fill(Journal(signing_key=admin, path=journal_path), 3)

        def mutate(lines):
            lines[1]["timestamp"] = "2000-01-01T00:00:00.000Z"
        rewrite(journal_path, mutate)

        kinds = [(v.index, v.violation_type) for v in Journal.load(journal_path).verify().violations]
        assert (1, "invalid_signature") in kinds
        assert (2, "chain_break") in kinds

    def test_forged_signer_detected(self, admin, business, journal_path):
        fill(Journal(signing_key=admin, path=journal_path), 2)

        def mutate(lines):
            lines[0]["signer_public_key"] = business.public_key_hex
        rewrite(journal_path, mutate)

        kinds = {v.violation_type for v in Journal.load(journal_path).verify().violations}
        assert "invalid_signature" in kinds

    def test_reopen_tampered_for_writing_fails(self, admin, journal_path):
        fill(Journal(signing_key=admin, path=journal_path), 2)
        rewrite(journal_path, lambda lines: lines[0]["data"].update(i=5))
        with pytest.raises(JournalError):
            Journal(signing_key=admin, path=journal_path)

    def test_malformed_line(self, journal_path):
        journal_path.write_text("{not json}\n")
        with pytest.raises(JournalError):
            Journal.load(journal_path)

    @pytest.mark.parametrize("line", ["[1, 2]", "7", "null", '{"index": 0}'])
    def test_non_entry_line(self, journal_path, line):
        journal_path.write_text(line + "\n")
        with pytest.raises(JournalError):
            Journal.load(journal_path)

    def test_loaded_journal_is_read_only(self, admin, journal_path):
        fill(Journal(signing_key=admin, path=journal_path), 1)
        with pytest.raises(JournalError):
            Journal.load(journal_path).append("op", {})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Journal.load(tmp_path / "absent.jsonl")


class TestQueries:

    def test_stats_and_filter(self, admin):
        journal = Journal(signing_key=admin)
        env = Env(journal=journal)
        token = TokenLedger(env, admin=admin.address)
        with env.as_signers(admin):
            token.mint(admin.address, 5)
            token.mint(admin.address, 6)

        stats = journal.get_stats()
        assert stats["total_entries"] == 3
        assert stats["by_type"] == {"_initialize": 1, "mint": 2}
        assert len(journal.get_entries_by_type("mint")) == 2
