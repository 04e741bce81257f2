"""
Tamper-evident journal of committed invocations.

Every successful public operation appends exactly one entry:

    entry_type = operation name ("submit_attestation", "redeem", ...)
    data       = {"contract", "operation", "changes"}

Chain:
    previous_hash = SHA-256(JCS(prev.to_chain_dict()))
    first entry   = GENESIS_HASH ("0" * 64)

Signing:
    signature = Ed25519(bytes.fromhex(entry.compute_hash()))

A journal opened with Journal.load() has no signing key and is
read-only: it can be verified but not appended to.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from revsettle.core.canonical import canonical_hash
from revsettle.core.crypto import Ed25519KeyManager
from revsettle.core.exceptions import JournalError
from revsettle.core.time import journal_timestamp


GENESIS_HASH = "0" * 64


@dataclass
class JournalEntry:
    """A single entry in the journal"""
    index:             int
    previous_hash:     str
    timestamp:         str
    entry_type:        str
    data:              Dict[str, Any]
    data_hash:         str
    signer_public_key: str
    signature:         str = ""

    def to_chain_dict(self) -> Dict[str, Any]:
        return {
            "index":             self.index,
            "previous_hash":     self.previous_hash,
            "timestamp":         self.timestamp,
            "entry_type":        self.entry_type,
            "data_hash":         self.data_hash,
            "signer_public_key": self.signer_public_key,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Full serialization including data and signature (JSONL line)."""
        d = self.to_chain_dict()
        d["data"] = self.data
        d["signature"] = self.signature
        return d

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "JournalEntry":
        return JournalEntry(
            index=             data["index"],
            previous_hash=     data["previous_hash"],
            timestamp=         data["timestamp"],
            entry_type=        data["entry_type"],
            data=              data["data"],
            data_hash=         data["data_hash"],
            signer_public_key= data["signer_public_key"],
            signature=         data.get("signature", ""),
        )

    def compute_hash(self) -> str:
        """Hash of this entry's chain fields; the next entry links to it."""
        return canonical_hash(self.to_chain_dict())


@dataclass
class JournalViolation:
    index:          int
    violation_type: str   # "genesis" | "chain_break" | "data_hash" | "invalid_signature"
    detail:         str


@dataclass
class JournalVerification:
    total_entries: int
    violations:    List[JournalViolation] = field(default_factory=list)
    head_hash:     Optional[str] = None

    @property
    def valid(self) -> bool:
        return not self.violations

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid":         self.valid,
            "total_entries": self.total_entries,
            "head_hash":     self.head_hash,
            "violations": [
                {
                    "index":          v.index,
                    "violation_type": v.violation_type,
                    "detail":         v.detail,
                }
                for v in self.violations
            ],
        }


class Journal:
    """
    Append-only, hash-chained, signed journal.

    path=None keeps the journal in memory only.
    """

    def __init__(
        self,
        signing_key: Optional[Ed25519KeyManager],
        path:        Optional[Path] = None,
    ) -> None:
        self.signing_key = signing_key
        self.path = Path(path) if path is not None else None
        self.entries: List[JournalEntry] = []

        if self.path is not None and self.path.exists():
            self._load()
            self.verify_or_raise()

    @classmethod
    def load(cls, path: Path) -> "Journal":
        """Open an existing journal file read-only, without verifying it."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Journal not found: {path}")
        journal = cls.__new__(cls)
        journal.signing_key = None
        journal.path = path
        journal.entries = []
        journal._load()
        return journal

    # ── Append ───────────────────────────────────────────────

    def append(self, entry_type: str, data: Dict[str, Any]) -> JournalEntry:
        """Create, sign and append a new entry"""
        if self.signing_key is None:
            raise JournalError("Journal is read-only (no signing key)")

        entry = JournalEntry(
            index=             len(self.entries),
            previous_hash=     self.head_hash(),
            timestamp=         journal_timestamp(),
            entry_type=        entry_type,
            data=              data,
            data_hash=         canonical_hash(data),
            signer_public_key= self.signing_key.public_key_hex,
        )
        entry.signature = self.signing_key.sign(bytes.fromhex(entry.compute_hash()))

        if self.path is not None:
            self._write_entry(entry)
        self.entries.append(entry)
        return entry

    # ── Queries ──────────────────────────────────────────────

    def head_hash(self) -> str:
        """The previous_hash the next entry would carry."""
        return self.entries[-1].compute_hash() if self.entries else GENESIS_HASH

    def get_entries_by_type(self, entry_type: str) -> List[JournalEntry]:
        return [e for e in self.entries if e.entry_type == entry_type]

    def get_stats(self) -> dict:
        type_counts: Dict[str, int] = {}
        for entry in self.entries:
            type_counts[entry.entry_type] = type_counts.get(entry.entry_type, 0) + 1
        return {
            "total_entries":    len(self.entries),
            "by_type":          type_counts,
            "first_entry_time": self.entries[0].timestamp if self.entries else None,
            "last_entry_time":  self.entries[-1].timestamp if self.entries else None,
        }

    # ── Verification ─────────────────────────────────────────

    def verify(self) -> JournalVerification:
        """Check genesis link, chain linkage, data hashes and signatures."""
        result = JournalVerification(total_entries=len(self.entries))
        prev: Optional[JournalEntry] = None

        for entry in self.entries:
            expected_prev = prev.compute_hash() if prev else GENESIS_HASH
            if entry.previous_hash != expected_prev:
                result.violations.append(JournalViolation(
                    index=entry.index,
                    violation_type="genesis" if prev is None else "chain_break",
                    detail=f"expected {expected_prev}, got {entry.previous_hash}",
                ))

            actual_data_hash = canonical_hash(entry.data)
            if entry.data_hash != actual_data_hash:
                result.violations.append(JournalViolation(
                    index=entry.index,
                    violation_type="data_hash",
                    detail=f"data hashes to {actual_data_hash}, entry says {entry.data_hash}",
                ))

            entry_hash_bytes = bytes.fromhex(entry.compute_hash())
            if not Ed25519KeyManager.verify_detached(
                entry_hash_bytes, entry.signature, entry.signer_public_key
            ):
                result.violations.append(JournalViolation(
                    index=entry.index,
                    violation_type="invalid_signature",
                    detail=f"signature does not verify for {entry.signer_public_key[:16]}...",
                ))
            prev = entry

        result.head_hash = self.head_hash()
        return result

    def verify_or_raise(self) -> None:
        """Verify journal integrity or raise JournalError on the first violation"""
        result = self.verify()
        if not result.valid:
            first = result.violations[0]
            raise JournalError(
                f"Journal integrity violation at index {first.index}: {first.violation_type}",
                {"detail": first.detail},
            )

    # ── Persistence ──────────────────────────────────────────

    def _write_entry(self, entry: JournalEntry) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise JournalError(f"Failed to write journal entry: {e}") from e

    def _load(self) -> None:
        self.entries = []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        raw = json.loads(line)
                    except json.JSONDecodeError as e:
                        raise JournalError(f"Invalid journal line {line_num}: {e}") from e
                    if not isinstance(raw, dict):
                        raise JournalError(
                            f"Invalid journal line {line_num}: expected an object, got {type(raw).__name__}"
                        )
                    try:
                        self.entries.append(JournalEntry.from_dict(raw))
                    except KeyError as e:
                        raise JournalError(f"Invalid journal line {line_num}: missing {e}") from e
        except OSError as e:
            raise JournalError(f"Failed to load journal: {e}") from e
