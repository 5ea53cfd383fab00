"""
Program Management Assistant
Tests — persisted layouts, dashboard load/save and flat → nested migration.

Covers:
    - Nested record written on save and restored on load
    - Orphan partitions and dangling active id pruned on load
    - Corrupt / malformed storage → empty dashboard, no exception
    - Flat layout import
    - One-time migration of flat keys
"""

import json

from pmassist.services.board_service import BoardService
from pmassist.services.dashboard_store import DashboardStore
from pmassist.services.partition_service import PartitionStore
from pmassist.services.program_service import ProgramRepository
from pmassist.services.schema import (
    FLAT_KEYS,
    NESTED_KEY,
    load_flat,
    load_nested,
    migrate_flat_schema,
)
from pmassist.storage import MemoryKeyValueStore, StoreAdapter


def _seeded(store):
    partitions = PartitionStore(store)
    repo = ProgramRepository(store, partitions)
    board = BoardService(partitions)
    p = repo.create({"name": "Alpha", "budget": 10})
    board.add_task(p.id, {"title": "T1"})
    t2 = board.add_task(p.id, {"title": "T2"})
    board.move_task(p.id, t2.id, "Done")
    board.add_blocker(p.id, {"title": "B", "startDate": "2024-01-01", "isProjectOnHold": True})
    board.add_risk(p.id, {"title": "R"})
    repo.select(p.id)
    return p


def _flat_store(programs, tasks, risks, **extra):
    data = {"programs": json.dumps(programs), "tasks": json.dumps(tasks), "risks": json.dumps(risks)}
    data.update(extra)
    return StoreAdapter(MemoryKeyValueStore(data))


# ═════════════════════════════════════════════════════════════════════════════
# NESTED LAYOUT
# ═════════════════════════════════════════════════════════════════════════════

class TestNestedLayout:
    def test_save_load_round_trip(self, store):
        p = _seeded(store)
        fresh = DashboardStore(store.adapter)
        assert fresh.load() is True
        assert fresh.to_dict() == store.to_dict()
        assert fresh.active_program.id == p.id
        assert fresh.program_data[p.id].counts()["tasks"] == {"todo": 1, "inProgress": 0, "done": 1}

    def test_record_shape(self, store):
        p = _seeded(store)
        record = store.adapter.get(NESTED_KEY)
        assert set(record) == {"programs", "programData", "activeProgramId"}
        partition = record["programData"][p.id]
        assert set(partition) == {"program", "tasks", "blockers", "risks"}
        assert set(partition["risks"]) == {"open", "mitigated", "closed"}

    def test_orphan_partition_dropped(self):
        record = {
            "programs": [{"id": "1", "name": "A"}],
            "programData": {"1": {}, "2": {"tasks": {"todo": []}}},
            "activeProgramId": "2",
        }
        programs, program_data, active_id = load_nested(record)
        assert [p.id for p in programs] == ["1"]
        assert list(program_data) == ["1"]
        assert active_id is None

    def test_load_absent_is_empty(self, store):
        assert store.load() is False
        assert store.programs == [] and store.program_data == {}
        assert store.active_program is None

    def test_load_corrupt_json_is_empty(self):
        state = DashboardStore(StoreAdapter(MemoryKeyValueStore({NESTED_KEY: "{oops"})))
        assert state.load() is False
        assert state.programs == []

    def test_malformed_program_skipped_others_kept(self, caplog):
        raw = json.dumps({"programs": [
            {"id": "1", "name": "A", "status": "Bogus"},
            {"id": "2", "name": "B"},
            "not an object",
        ]})
        state = DashboardStore(StoreAdapter(MemoryKeyValueStore({NESTED_KEY: raw})))
        assert state.load() is True
        assert [p.id for p in state.programs] == ["2"]
        assert "unreadable" in caplog.text

    def test_bad_task_skipped_rest_of_dashboard_survives(self, caplog):
        raw = json.dumps({
            "programs": [{"id": "1", "name": "A"}, {"id": "2", "name": "B"}],
            "programData": {
                "1": {"tasks": {"todo": [
                    {"id": "t1", "programId": "1", "title": "Good"},
                    {"id": "t2", "programId": "1", "title": "Bad", "status": "Someday"},
                ]}},
                "2": {"risks": {"open": [{"id": "r1", "programId": "2", "title": "R"}]}},
            },
            "activeProgramId": "2",
        })
        adapter = StoreAdapter(MemoryKeyValueStore({NESTED_KEY: raw}))
        state = DashboardStore(adapter)

        assert state.load() is True
        assert [t.id for t in state.program_data["1"].all_tasks()] == ["t1"]
        assert [r.id for r in state.program_data["2"].all_risks()] == ["r1"]
        assert state.active_program_id == "2"
        assert "Someday" in caplog.text

        state.save()
        stored = adapter.get(NESTED_KEY)
        assert [p["id"] for p in stored["programs"]] == ["1", "2"]

    def test_unreadable_partition_reset(self):
        record = {"programs": [{"id": "1", "name": "A"}], "programData": {"1": "junk"}}
        programs, program_data, _ = load_nested(record)
        assert [p.id for p in programs] == ["1"]
        assert program_data == {}

    def test_load_non_object_is_empty(self):
        state = DashboardStore(StoreAdapter(MemoryKeyValueStore({NESTED_KEY: "[1, 2]"})))
        assert state.load() is False


# ═════════════════════════════════════════════════════════════════════════════
# FLAT LAYOUT
# ═════════════════════════════════════════════════════════════════════════════

class TestFlatLayout:
    def test_load_flat_drops_orphans(self):
        programs, program_data = load_flat(
            [{"id": "1", "name": "A"}],
            [
                {"id": "t1", "programId": "1", "title": "Mine", "status": "Done"},
                {"id": "t2", "programId": "9", "title": "Orphan"},
            ],
            [{"id": "r1", "programId": "9", "title": "Orphan risk"}],
        )
        assert [p.id for p in programs] == ["1"]
        assert [t.id for t in program_data["1"].all_tasks()] == ["t1"]
        assert program_data["1"].tasks["done"][0].id == "t1"
        assert program_data["1"].all_risks() == []


# ═════════════════════════════════════════════════════════════════════════════
# MIGRATION
# ═════════════════════════════════════════════════════════════════════════════

class TestMigration:
    def test_migrates_and_removes_flat_keys(self):
        adapter = _flat_store(
            [{"id": "1", "name": "A"}, {"id": "2", "name": "B"}],
            [{"id": "t1", "programId": "2", "title": "T"}],
            [{"id": "r1", "programId": "1", "title": "R", "status": "Closed"}],
        )
        record = migrate_flat_schema(adapter)
        assert record is not None
        assert adapter.get(NESTED_KEY) == record
        for key in FLAT_KEYS:
            assert adapter.has(key) is False
        assert record["activeProgramId"] is None
        assert [t["id"] for t in record["programData"]["2"]["tasks"]["todo"]] == ["t1"]
        assert [r["id"] for r in record["programData"]["1"]["risks"]["closed"]] == ["r1"]

    def test_dashboard_load_runs_migration(self):
        adapter = _flat_store([{"id": "1", "name": "A"}], [], [])
        state = DashboardStore(adapter)
        assert state.load() is True
        assert [p.name for p in state.programs] == ["A"]
        assert adapter.has("programs") is False

    def test_noop_when_nested_exists(self):
        adapter = _flat_store(
            [{"id": "1", "name": "A"}], [], [],
            **{NESTED_KEY: json.dumps({"programs": [], "programData": {}, "activeProgramId": None})},
        )
        assert migrate_flat_schema(adapter) is None
        assert adapter.has("programs") is True

    def test_noop_without_flat_keys(self):
        adapter = StoreAdapter(MemoryKeyValueStore())
        assert migrate_flat_schema(adapter) is None
        assert adapter.has(NESTED_KEY) is False

    def test_unparseable_flat_data_left_alone(self, caplog):
        adapter = _flat_store([{"id": "1"}], [], [])
        assert migrate_flat_schema(adapter) is None
        assert adapter.has("programs") is True
        assert adapter.has(NESTED_KEY) is False
        assert "migration aborted" in caplog.text


class TestMigrationCommand:
    def test_cli_migrates_flat_keys(self, app, workspace):
        kv = workspace.state.adapter.store
        kv.set_item("programs", json.dumps([{"id": "1", "name": "A"}]))
        kv.set_item("tasks", json.dumps([{"id": "t1", "programId": "1", "title": "T"}]))

        result = app.test_cli_runner().invoke(args=["migrate-flat-storage"])

        assert result.exit_code == 0
        assert [p.name for p in workspace.state.programs] == ["A"]
        assert [t.id for t in workspace.partitions.flatten_tasks("1")] == ["t1"]
        assert kv.get_item("programs") is None
        assert kv.get_item(NESTED_KEY) is not None

    def test_cli_nothing_to_migrate(self, app, workspace):
        result = app.test_cli_runner().invoke(args=["migrate-flat-storage"])
        assert result.exit_code == 0
        assert workspace.state.programs == []
