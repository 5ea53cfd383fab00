"""
Per-program AI assistant.

Builds a prompt from the program's current board and sends it through the
gateway. One assistant allows one outstanding request: a second ``ask``
while the first is in flight returns an error result immediately instead
of queueing.

Assistants share the workspace gateway and never close it.
"""

import logging
import threading

from pmassist.ai.gateway import AIQueryGateway, AIQueryResult
from pmassist.ai.prompts import build_prompt

logger = logging.getLogger(__name__)

BUSY_ERROR = "A request is already in progress"


class AIAssistant:
    def __init__(self, gateway: AIQueryGateway, partitions, program_id: str):
        self.gateway = gateway
        self.partitions = partitions
        self.program_id = str(program_id)
        self._in_flight = threading.Lock()

    @property
    def is_loading(self) -> bool:
        return self._in_flight.locked()

    def build_prompt(self, kind: str, custom_prompt: str = "") -> str:
        program = self.partitions.state.get_program(self.program_id)
        return build_prompt(
            kind,
            program,
            tasks=self.partitions.flatten_tasks(self.program_id),
            risks=self.partitions.flatten_risks(self.program_id),
            blockers=self.partitions.flatten_blockers(self.program_id),
            custom_prompt=custom_prompt,
        )

    def ask(self, kind: str, custom_prompt: str = "") -> AIQueryResult:
        """Run one query. Prompt errors (unknown kind, unknown program)
        propagate; transport errors come back inside the result.
        """
        if not self._in_flight.acquire(blocking=False):
            logger.info("AI request rejected, one already in flight program=%s", self.program_id)
            return AIQueryResult.failure(BUSY_ERROR)
        try:
            with self.partitions.state.lock:
                prompt = self.build_prompt(kind, custom_prompt)
            result = self.gateway.query(prompt)
        finally:
            self._in_flight.release()
        if result.error:
            logger.warning(
                "AI %s query failed program=%s error=%s", kind, self.program_id, result.error,
                extra={"program_id": self.program_id},
            )
        return result
