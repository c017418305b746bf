"""Tests for the workflow policy store."""

from __future__ import annotations

import pytest

from csv_watcher.policy import PolicyStore, WorkflowPolicy


class TestWorkflowPolicy:
    """Tests for the policy value object."""

    def test_defaults(self) -> None:
        policy = WorkflowPolicy()
        assert policy.auto_processing is True
        assert policy.process_delay == 2000
        assert policy.enable_backup is True
        assert policy.enable_cleanup is True

    def test_delay_in_seconds(self) -> None:
        assert WorkflowPolicy(process_delay=1500).process_delay_seconds == 1.5

    def test_to_dict(self) -> None:
        assert WorkflowPolicy(enable_backup=False).to_dict() == {
            "autoProcessing": True,
            "processDelay": 2000,
            "enableBackup": False,
            "enableCleanup": True,
        }


class TestPolicyStore:
    """Tests for partial updates."""

    def test_update_merges_over_current(self) -> None:
        """Test that unspecified fields keep their previous value."""
        store = PolicyStore()
        store.update(enable_backup=False)

        merged = store.update(process_delay=100)

        assert merged.enable_backup is False
        assert merged.process_delay == 100
        assert merged.auto_processing is True
        assert store.get() == merged

    def test_set_auto_processing(self) -> None:
        store = PolicyStore()
        assert store.set_auto_processing(False).auto_processing is False
        assert store.get().auto_processing is False

    def test_on_change_receives_merged_policy(self) -> None:
        """Test that listeners see every update."""
        seen: list[WorkflowPolicy] = []
        store = PolicyStore(on_change=seen.append)

        store.update(enable_cleanup=False)
        store.set_auto_processing(False)

        assert len(seen) == 2
        assert seen[-1] == WorkflowPolicy(auto_processing=False, enable_cleanup=False)

    def test_unknown_field_raises(self) -> None:
        store = PolicyStore()
        with pytest.raises(ValueError, match="Unknown workflow setting"):
            store.update(retries=3)
        assert store.get() == WorkflowPolicy()

    def test_negative_delay_raises(self) -> None:
        store = PolicyStore()
        with pytest.raises(ValueError, match="must not be negative"):
            store.update(process_delay=-1)

    def test_initial_policy_is_kept(self) -> None:
        initial = WorkflowPolicy(auto_processing=False, process_delay=0)
        assert PolicyStore(initial).get() is initial
