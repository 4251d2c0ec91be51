"""Tests for process metadata and identifiers."""

import os
import string

from faktory_client.process import PROTOCOL_VERSION, random_id, rss_kb, worker_payload


class TestRandomId:
    """Secure alphanumeric identifiers."""

    def test_length_and_alphabet(self):
        """Id has the requested length and only letters/digits."""
        value = random_id(18)
        assert len(value) == 18
        assert set(value) <= set(string.ascii_letters + string.digits)

    def test_unique(self):
        """Ids do not repeat within a run."""
        assert len({random_id(18) for _ in range(1000)}) == 1000


def test_rss_kb_positive():
    """Resident memory of a running interpreter is positive."""
    assert rss_kb() > 0


def test_worker_payload():
    """HELLO payload describes this process."""
    payload = worker_payload("wid123", ["python", "test"])
    assert payload["wid"] == "wid123"
    assert payload["pid"] == os.getpid()
    assert payload["v"] == PROTOCOL_VERSION
    assert payload["labels"] == ["python", "test"]
    assert payload["hostname"]
    assert "pwdhash" not in payload
