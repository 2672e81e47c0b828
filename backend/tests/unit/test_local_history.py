# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for local edit history
"""

import pytest

from drivehub.history.local import LocalEditHistory, merge_entries
from drivehub.sync.local_cache import CachedFile, LocalCache, LocalEditEntry


@pytest.fixture
def cache():
    """Memory-only cache holding one file"""
    cache = LocalCache()
    cache.set_file(CachedFile(file_id="f1", file_name="a.md", content="one\n"))
    return cache


@pytest.fixture
def history(cache):
    return LocalEditHistory(cache)


class TestSessions:
    """Edits between commit boundaries collapse into one entry"""

    def test_edits_in_one_session_share_an_entry(self, history, cache):
        history.save_local_edit("f1", "one\ntwo\n")
        history.save_local_edit("f1", "one\ntwo\nthree\n")

        entries = history.get_history("f1")
        assert len(entries) == 1
        assert entries[0].origin == "local"
        assert entries[0].additions == 2
        assert cache.get_file("f1").content == "one\ntwo\nthree\n"

    def test_boundary_starts_new_entry(self, history):
        history.save_local_edit("f1", "one\ntwo\n")
        history.add_commit_boundary("f1")
        history.save_local_edit("f1", "changed\n")

        assert len(history.get_history("f1")) == 2

    def test_reverting_within_session_removes_entry(self, history):
        history.save_local_edit("f1", "one\ntwo\n")
        history.save_local_edit("f1", "one\n")

        assert history.get_history("f1") == []

    def test_new_file_is_cached(self, history, cache):
        history.save_local_edit("f2", "fresh\n", file_name="new.md")

        assert cache.get_file("f2").file_name == "new.md"
        assert len(history.get_history("f2")) == 1

    def test_pruned_to_max_entries(self, cache):
        history = LocalEditHistory(cache, max_entries_per_file=2)
        for text in ("v1\n", "v2\n", "v3\n"):
            history.save_local_edit("f1", text)
            history.add_commit_boundary("f1")

        entries = history.get_history("f1")
        assert len(entries) == 2
        assert "+v3" in entries[0].diff


class TestRestore:
    def test_restore_versions(self, history):
        history.save_local_edit("f1", "one\ntwo\nthree\n")
        history.add_commit_boundary("f1")
        history.save_local_edit("f1", "changed\n")

        assert history.restore_version("f1", 0) == "changed\n"
        assert history.restore_version("f1", 1) == "one\ntwo\nthree\n"
        assert history.restore_version("f1", 2) == "one\n"

    def test_unknown_file(self, history):
        assert history.restore_version("missing", 1) is None


class TestSnapshots:
    def test_commit_snapshot_records_remote_entry(self, history, cache):
        entry = history.commit_snapshot("f1", "a.md", "from remote\n")

        assert entry.origin == "remote"
        assert cache.get_file("f1").content == "one\n"
        assert history.get_history("f1")[0].id == entry.id

    def test_identical_snapshot_is_skipped(self, history):
        assert history.commit_snapshot("f1", "a.md", "one\n") is None

    def test_snapshot_closes_session(self, history):
        history.save_local_edit("f1", "one\ntwo\n")
        history.commit_snapshot("f1", "a.md", "remote\n")
        history.save_local_edit("f1", "remote\nlocal\n")

        assert [e.origin for e in history.get_history("f1")] == ["local", "remote", "local"]


def test_locally_modified_file_ids(history):
    history.commit_snapshot("f9", "pulled.md", "only remote\n")
    history.save_local_edit("f1", "one\nedited\n")

    assert history.locally_modified_file_ids() == ["f1"]


def test_delete_and_clear(history):
    history.save_local_edit("f1", "one\ntwo\n")
    history.save_local_edit("f2", "x\n", file_name="b.md")

    history.delete_file("f1")
    assert history.get_history("f1") == []
    assert len(history.get_history("f2")) == 1

    history.clear_all()
    assert history.get_history("f2") == []


def test_merge_entries_newest_first():
    local = [LocalEditEntry(id="l1", timestamp="2025-01-01T00:00:01.000Z", diff="")]
    remote = [
        LocalEditEntry(id="r1", timestamp="2025-01-01T00:00:00.000Z", diff="", origin="remote"),
        LocalEditEntry(id="r2", timestamp="2025-01-01T00:00:02.000Z", diff="", origin="remote"),
    ]
    assert [e.id for e in merge_entries(local, remote)] == ["r2", "l1", "r1"]
