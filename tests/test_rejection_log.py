"""
Tests for the rejection log
"""

import hashlib
import json

import pytest

from scorebridge import RejectionLogger, ValidationError, validate_message


def _rejection(message):
    try:
        validate_message(message)
    except ValidationError as e:
        return e
    raise AssertionError(f"{message!r} was accepted")


class TestRejectionLogger:

    @pytest.fixture
    def log(self, tmp_path):
        return RejectionLogger(log_dir=str(tmp_path / "rejections"))

    def test_log_does_not_store_message(self, log):
        message = "secret; payload"
        entry = log.log(_rejection(message), message)

        assert entry.reason == "invalid_characters"
        assert entry.offending_characters == [";"]
        assert entry.message_hash == hashlib.sha256(message.encode()).hexdigest()
        assert entry.short_hash == entry.message_hash[:8]
        assert entry.message_length == len(message)

        files = list(log.log_dir.glob("rejections-*.jsonl"))
        assert len(files) == 1
        assert "secret" not in files[0].read_text()

    def test_empty_rejection(self, log):
        entry = log.log(_rejection(None), None)
        assert entry.reason == "empty"
        assert entry.offending_characters == []
        assert entry.message_length == 0

    def test_get_entries_and_filter(self, log):
        log.log(_rejection("a|b"), "a|b")
        log.log(_rejection(""), "")

        assert len(list(log.get_entries())) == 2
        empties = list(log.get_entries(reason="empty"))
        assert len(empties) == 1
        assert empties[0].reason == "empty"

    def test_corrupt_lines_skipped(self, log):
        log.log(_rejection("a|b"), "a|b")
        log_file = next(log.log_dir.glob("rejections-*.jsonl"))
        with open(log_file, "a") as f:
            f.write("not json\n")
            f.write(json.dumps({"unexpected": True}) + "\n")

        assert len(list(log.get_entries())) == 1

    def test_stats(self, log):
        for message in ("a|b", "a|b", "c;d|", "  "):
            log.log(_rejection(message), message)

        stats = log.get_stats()
        assert stats["total"] == 4
        assert stats["by_reason"] == {"invalid_characters": 3, "empty": 1}
        assert stats["top_characters"]["|"] == 3
        assert stats["top_characters"][";"] == 1
        assert stats["unique_messages"] == 3

    def test_stats_empty(self, log):
        assert log.get_stats(days=3) == {"total": 0, "days": 3}

    def test_clear(self, log):
        log.log(_rejection("a|b"), "a|b")
        assert log.clear() == 1
        assert list(log.get_entries()) == []

    def test_summary(self, log):
        entry = log.log(_rejection("a{b"), "a{b")
        assert entry.short_hash in entry.summary()
        assert "'{'" in entry.summary()
