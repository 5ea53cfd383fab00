"""Workspace — one dashboard's state and the services wired to it.

The app factory builds a single Workspace and keeps it in
``app.extensions["pmassist"]``; blueprints reach it through
``get_workspace()``. All mutations go through its services, which share
one DashboardStore and therefore one persistence cycle and one lock.
"""
import logging

from flask import current_app

from pmassist.ai.assistant import AIAssistant
from pmassist.ai.gateway import build_ai_gateway
from pmassist.services.board_service import BoardService
from pmassist.services.dashboard_store import DashboardStore
from pmassist.services.partition_service import PartitionStore
from pmassist.services.program_service import ProgramRepository
from pmassist.storage import StoreAdapter, build_key_value_store

logger = logging.getLogger(__name__)

EXTENSION_KEY = "pmassist"


class Workspace:
    def __init__(self, adapter: StoreAdapter, gateway=None):
        self.state = DashboardStore(adapter)
        self.partitions = PartitionStore(self.state)
        self.programs = ProgramRepository(self.state, self.partitions)
        self.board = BoardService(self.partitions)
        self.gateway = gateway
        self._assistants: dict[str, AIAssistant] = {}

    def load(self) -> bool:
        with self.state.lock:
            self._assistants.clear()
            return self.state.load()

    def assistant_for(self, program_id) -> AIAssistant:
        """The program's assistant, created on first use.

        Creation happens under the state lock so concurrent first requests
        share one assistant and therefore one in-flight guard.
        """
        with self.state.lock:
            program = self.state.get_program(program_id)
            assistant = self._assistants.get(program.id)
            if assistant is None:
                assistant = AIAssistant(self.gateway, self.partitions, program.id)
                self._assistants[program.id] = assistant
            return assistant

    def forget_assistant(self, program_id) -> None:
        with self.state.lock:
            self._assistants.pop(str(program_id), None)


def init_workspace(app) -> Workspace:
    """Build the configured storage backend, load state, attach to ``app``.

    Must run inside an application context when the SQL backend is used.
    """
    backend = build_key_value_store(app.config.get("STORAGE_BACKEND", "sql"))
    workspace = Workspace(StoreAdapter(backend), gateway=build_ai_gateway(app.config))
    workspace.load()
    app.extensions[EXTENSION_KEY] = workspace
    logger.info("Workspace ready backend=%s", type(backend).__name__)
    return workspace


def get_workspace() -> Workspace:
    return current_app.extensions[EXTENSION_KEY]
