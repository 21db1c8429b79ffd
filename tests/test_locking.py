"""Tests for locking.py - per-project run leases."""

import threading
from unittest.mock import patch

import pytest

from php_sanitizer.exceptions import ConcurrentAnalysisError, WorkspaceError
from php_sanitizer.locking import RunLock


@pytest.fixture
def lock(tmp_path):
    return RunLock(tmp_path / "workspace")


class TestAcquireRelease:
    def test_acquire_returns_token(self, lock):
        token = lock.acquire("p1")
        assert token
        assert lock.is_held("p1")
        assert lock.read("p1").token == token

    def test_second_acquire_rejected(self, lock):
        lock.acquire("p1")
        with pytest.raises(ConcurrentAnalysisError) as exc_info:
            lock.acquire("p1")
        assert exc_info.value.project_id == "p1"
        assert exc_info.value.holder.startswith("pid ")

    def test_release_with_token(self, lock):
        token = lock.acquire("p1")
        assert lock.release("p1", token) is True
        assert not lock.is_held("p1")
        assert lock.read("p1") is None

    def test_release_with_wrong_token_keeps_lease(self, lock):
        lock.acquire("p1")
        assert lock.release("p1", "not-the-token") is False
        assert lock.is_held("p1")

    def test_release_unheld(self, lock):
        assert lock.release("p1", "anything") is False

    def test_projects_are_independent(self, lock):
        lock.acquire("p1")
        lock.acquire("p2")
        assert lock.is_held("p1") and lock.is_held("p2")

    def test_unsafe_ids_are_sanitized(self, lock):
        lock.acquire("../../etc/passwd")
        (lease_file,) = lock.lock_dir.iterdir()
        assert lease_file.parent == lock.lock_dir

    def test_similar_ids_get_separate_leases(self, lock):
        lock.acquire("a/b")
        lock.acquire("a_b")
        assert lock.is_held("a/b") and lock.is_held("a_b")
        assert len(list(lock.lock_dir.iterdir())) == 2

    def test_failed_lease_write_leaves_no_lease(self, lock):
        with patch(
            "php_sanitizer.locking.json.dump",
            side_effect=OSError(28, "No space left on device"),
        ):
            with pytest.raises(WorkspaceError) as exc_info:
                lock.acquire("p1")

        assert "No space left" in exc_info.value.reason
        assert not lock.is_held("p1")
        assert lock.acquire("p1")

    def test_lock_dir_not_writable(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(WorkspaceError):
            RunLock(blocker).acquire("p1")

    def test_only_one_thread_wins(self, lock):
        winners = []
        losers = []
        barrier = threading.Barrier(8)

        def _try():
            barrier.wait()
            try:
                winners.append(lock.acquire("p1"))
            except ConcurrentAnalysisError:
                losers.append(True)

        threads = [threading.Thread(target=_try) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(winners) == 1
        assert len(losers) == 7


class TestStaleLeases:
    def test_unreadable_lease_counts_as_held(self, lock):
        lock.lock_dir.mkdir(parents=True)
        lock._lease_path("p1").write_text("{half written")

        lease = lock.read("p1")

        assert lease is not None
        assert lease.token == ""
        with pytest.raises(ConcurrentAnalysisError):
            lock.acquire("p1")

    def test_live_lease_not_broken(self, lock):
        lock.acquire("p1")
        assert lock.break_lease("p1") is False
        assert lock.is_held("p1")

    def test_dead_lease_broken(self, lock):
        lock.acquire("p1")
        with patch("php_sanitizer.locking._is_process_alive", return_value=False):
            assert lock.break_lease("p1") is True
        assert not lock.is_held("p1")

    def test_force_break(self, lock):
        lock.acquire("p1")
        assert lock.break_lease("p1", only_if_stale=False) is True

    def test_break_unheld(self, lock):
        assert lock.break_lease("p1") is False
