"""
revsettle: Canonical JSON Encoding — RFC 8785 (JCS)

This is the ONLY canonicalization permitted in revsettle.
Journal hashing, journal signing and authorization challenges
MUST use this module.

RFC 8785: https://www.rfc-editor.org/rfc/rfc8785
"""

import hashlib

try:
    import jcs as _jcs
except ImportError as exc:
    raise ImportError(
        "revsettle requires the 'jcs' package for RFC 8785 compliance.\n"
        "Install with: pip install jcs\n"
        f"Original error: {exc}"
    ) from exc


def canonicalize(obj) -> bytes:
    """
    Encode a JSON-primitive structure to RFC 8785 canonical JSON bytes.

    Output is deterministic regardless of key insertion order.
    Values must be JSON-primitive (str, int, bool, None, list, dict).
    Records are converted with to_dict() before they reach this function.

    Returns:
        UTF-8 encoded canonical JSON bytes, suitable for signing.
    """
    return _jcs.canonicalize(obj)


def canonical_hash(obj) -> str:
    """
    SHA-256 of the RFC 8785 canonical form.

    Used for journal chaining and data binding.

    Returns:
        Lowercase hex-encoded SHA-256 digest (64 characters).
    """
    return hashlib.sha256(canonicalize(obj)).hexdigest()
