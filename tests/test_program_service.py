"""
Program Management Assistant
Tests — program repository.

Covers:
    - create: defaults, empty-name no-op, party staging, partition seeded
    - update: non-empty merge, validation, active/partition snapshots follow
    - delete: confirmation hook, cascade to partition, active cleared
    - select / active
    - write-through persistence + reload
    - wrong-typed drafts rejected, concurrent creates all kept
"""

import threading
from unittest.mock import MagicMock

import pytest

from pmassist.core.exceptions import NotFoundError, ValidationError
from pmassist.services.dashboard_store import DashboardStore
from pmassist.services.partition_service import PartitionStore
from pmassist.services.program_service import ProgramRepository
from pmassist.services.schema import NESTED_KEY
from pmassist.utils.helpers import today_iso


@pytest.fixture
def repo(store):
    return ProgramRepository(store, PartitionStore(store))


def _reload(store):
    fresh = DashboardStore(store.adapter)
    fresh.load()
    return fresh


# ═════════════════════════════════════════════════════════════════════════════
# CREATE
# ═════════════════════════════════════════════════════════════════════════════

class TestCreate:
    def test_defaults(self, repo):
        p = repo.create({"name": "  ERP Rollout  "})
        assert p.name == "ERP Rollout"
        assert p.status == "Not Started"
        assert p.start_date == today_iso()
        assert p.end_date == ""
        assert p.budget == 0
        assert p.parties == []

    def test_empty_name_is_noop(self, repo, store):
        assert repo.create({"name": "   "}) is None
        assert repo.create({}) is None
        assert repo.list() == []
        assert store.adapter.get(NESTED_KEY) is None

    def test_status_in_draft_ignored(self, repo):
        assert repo.create({"name": "X", "status": "Completed"}).status == "Not Started"

    def test_fields_and_parties(self, repo):
        p = repo.create({
            "name": "CRM", "description": "Sales tooling",
            "startDate": "01.02.2024", "endDate": "2024-06-30", "budget": 5000,
            "parties": [
                {"name": "Acme", "designation": "Vendor"},
                {"name": "  ", "designation": "ignored"},
            ],
        })
        assert p.start_date == "2024-02-01"
        assert p.end_date == "2024-06-30"
        assert p.budget == 5000
        assert [party.name for party in p.parties] == ["Acme"]

    def test_partition_seeded(self, repo, store):
        p = repo.create({"name": "X"})
        assert store.program_data[p.id].program is p

    def test_insertion_order_and_unique_ids(self, repo):
        names = ["A", "B", "C"]
        created = [repo.create({"name": n}) for n in names]
        assert [p.name for p in repo.list()] == names
        assert len({p.id for p in created}) == 3

    def test_persisted_and_reloadable(self, repo, store):
        p = repo.create({"name": "Persisted"})
        fresh = _reload(store)
        assert [x.to_dict() for x in fresh.programs] == [p.to_dict()]
        assert p.id in fresh.program_data


# ═════════════════════════════════════════════════════════════════════════════
# UPDATE
# ═════════════════════════════════════════════════════════════════════════════

class TestUpdate:
    def test_merges_non_empty_fields(self, repo):
        p = repo.create({"name": "Old", "description": "keep me", "budget": 100})
        updated = repo.update(p.id, {"name": "New", "description": "", "status": "In Progress"})
        assert updated.name == "New"
        assert updated.description == "keep me"
        assert updated.status == "In Progress"
        assert updated.budget == 100
        assert repo.get(p.id) is updated

    def test_zero_budget_is_applied(self, repo):
        p = repo.create({"name": "X", "budget": 100})
        assert repo.update(p.id, {"budget": 0}).budget == 0

    def test_invalid_status_rejected(self, repo):
        p = repo.create({"name": "X"})
        with pytest.raises(ValidationError):
            repo.update(p.id, {"status": "Paused"})
        assert repo.get(p.id).status == "Not Started"

    def test_unknown_program(self, repo):
        with pytest.raises(NotFoundError):
            repo.update("404", {"name": "X"})

    def test_active_and_partition_follow_update(self, repo, store):
        p = repo.create({"name": "Old"})
        repo.select(p.id)
        repo.update(p.id, {"name": "Renamed"})
        assert repo.active.name == "Renamed"
        assert store.program_data[p.id].program.name == "Renamed"
        stored = store.adapter.get(NESTED_KEY)
        assert stored["programData"][p.id]["program"]["name"] == "Renamed"

    def test_empty_patch_returns_current(self, repo):
        p = repo.create({"name": "X"})
        assert repo.update(p.id, {}) is p


# ═════════════════════════════════════════════════════════════════════════════
# DELETE / SELECT
# ═════════════════════════════════════════════════════════════════════════════

class TestDeleteAndSelect:
    def test_unconfirmed_delete_changes_nothing(self, repo):
        p = repo.create({"name": "X"})
        assert repo.delete(p.id, confirm=lambda _p: False) is False
        assert repo.get(p.id) is p

    def test_delete_cascades_and_clears_active(self, repo, store):
        keep = repo.create({"name": "Keep"})
        gone = repo.create({"name": "Gone"})
        repo.select(gone.id)
        seen = []
        assert repo.delete(gone.id, confirm=lambda prog: seen.append(prog.name) or True) is True
        assert seen == ["Gone"]
        assert [p.id for p in repo.list()] == [keep.id]
        assert gone.id not in store.program_data
        assert repo.active is None
        stored = store.adapter.get(NESTED_KEY)
        assert stored["activeProgramId"] is None
        assert list(stored["programData"]) == [keep.id]

    def test_delete_drops_partition_through_partition_store(self, repo):
        p = repo.create({"name": "X"})
        repo.partitions.remove = MagicMock(wraps=repo.partitions.remove)
        repo.delete(p.id)
        repo.partitions.remove.assert_called_once_with(p.id)

    def test_delete_other_keeps_active(self, repo):
        a = repo.create({"name": "A"})
        b = repo.create({"name": "B"})
        repo.select(a.id)
        repo.delete(b.id)
        assert repo.active is a

    def test_delete_unknown(self, repo):
        with pytest.raises(NotFoundError):
            repo.delete("404")

    def test_select_and_clear(self, repo, store):
        p = repo.create({"name": "X"})
        assert repo.select(p.id) is p
        assert _reload(store).active_program_id == p.id
        assert repo.select(None) is None
        assert repo.active is None

    def test_select_unknown(self, repo):
        with pytest.raises(NotFoundError):
            repo.select("404")


class TestDraftTypes:
    @pytest.mark.parametrize("draft", [
        {"name": 5},
        {"name": "A", "parties": "xy"},
        {"name": "A", "parties": [{"name": 7}]},
        {"name": "A", "description": 3},
    ])
    def test_create_rejects(self, repo, store, draft):
        with pytest.raises(ValidationError):
            repo.create(draft)
        assert repo.list() == []
        assert store.adapter.has(NESTED_KEY) is False

    def test_update_rejects_and_keeps_record(self, repo):
        p = repo.create({"name": "A"})
        with pytest.raises(ValidationError):
            repo.update(p.id, {"name": "B", "parties": [3]})
        assert repo.get(p.id).name == "A"


class TestConcurrentCreates:
    def test_parallel_creates_all_kept(self, repo, store):
        def worker(n):
            for i in range(25):
                repo.create({"name": f"P{n}-{i}"})

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(repo.list()) == 150
        assert len(_reload(store).programs) == 150
