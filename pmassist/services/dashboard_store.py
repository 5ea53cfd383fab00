"""Dashboard state — the single owner of all in-memory program data.

Holds the program list, the per-program partitions and the active program
id, and mirrors the whole tree into the key-value store on every change.

Lifecycle:
    state = DashboardStore(StoreAdapter(backend))
    state.load()     # at startup; never raises
    ...              # services mutate, then call state.save()

``load()`` is fail-soft: corrupted or absent storage leaves an empty
dashboard and a logged warning. ``save()`` is write-through and
synchronous; a failed write is logged and the in-memory state is kept.
"""
import logging
import threading

from pmassist.core.exceptions import NotFoundError
from pmassist.models.entities import Program
from pmassist.services.partition_service import ProgramData
from pmassist.services.schema import (
    NESTED_KEY,
    dump_nested,
    load_nested,
    migrate_flat_schema,
)

logger = logging.getLogger(__name__)


class DashboardStore:
    def __init__(self, adapter):
        self.adapter = adapter
        self.programs: list[Program] = []
        self.program_data: dict[str, ProgramData] = {}
        self.active_program_id: str | None = None
        # Guards every read-modify-write on the fields above
        self.lock = threading.RLock()

    # ── Lookup ────────────────────────────────────────────────────────────

    def find_program(self, program_id) -> Program | None:
        program_id = str(program_id)
        for program in self.programs:
            if program.id == program_id:
                return program
        return None

    def get_program(self, program_id) -> Program:
        program = self.find_program(program_id)
        if program is None:
            raise NotFoundError("Program", str(program_id))
        return program

    @property
    def active_program(self) -> Program | None:
        if self.active_program_id is None:
            return None
        return self.find_program(self.active_program_id)

    # ── Persistence ───────────────────────────────────────────────────────

    def reset(self) -> None:
        self.programs = []
        self.program_data = {}
        self.active_program_id = None

    def load(self) -> bool:
        """Rehydrate from storage. Returns True if stored state was applied."""
        with self.lock:
            return self._load()

    def _load(self) -> bool:
        self.reset()
        record = self.adapter.get(NESTED_KEY)
        if record is None:
            record = migrate_flat_schema(self.adapter)
        if record is None:
            logger.info("No stored dashboard state; starting empty")
            return False
        try:
            programs, program_data, active_id = load_nested(record)
        except Exception as exc:
            logger.warning("Stored dashboard state is unreadable, starting empty: %s", exc)
            return False
        self.programs = programs
        self.program_data = program_data
        self.active_program_id = active_id
        logger.info(
            "Dashboard state loaded: programs=%d partitions=%d active=%s",
            len(programs), len(program_data), active_id,
        )
        return True

    def save(self) -> bool:
        with self.lock:
            ok = self.adapter.set(NESTED_KEY, self.to_dict())
        if not ok:
            logger.error("Dashboard state not persisted; keeping in-memory state")
        return ok

    # ── Serialisation ─────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return dump_nested(self.programs, self.program_data, self.active_program_id)
