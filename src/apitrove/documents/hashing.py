# ABOUTME: SHA-256 content fingerprints for canonical document serializations.
# ABOUTME: A changed fingerprint is what advances a candidate's last-updated timestamp.

import hashlib


def compute_fingerprint(content: str) -> str:
    """Compute the SHA-256 hash of serialized document content.

    Args:
        content: Canonical (key-sorted) serialization of the document.

    Returns:
        Lowercase hex digest string (64 characters).
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()
