# ─────────────────────────────────────────────────────────────────
# notifiers/command.py — Run an External Command on Notify
#
# The command receives two environment variables:
#   CONDEMN_NAME  → the switch name, verbatim
#   CONDEMN_EARLY → seconds early, or 0 when the switch was late
#
# The process runs as a background asyncio task. Its exit status is
# logged and otherwise ignored.
# ─────────────────────────────────────────────────────────────────

import asyncio
import logging
import os
import shlex
from typing import Sequence

from models import Classification
from notifiers import Notifier

logger = logging.getLogger("notifiers.command")

NAME_VAR = "CONDEMN_NAME"
EARLY_VAR = "CONDEMN_EARLY"


class CommandNotifier(Notifier):

    def __init__(self, cmd: Sequence[str]):
        if not cmd:
            raise ValueError("notify command must not be empty")
        self.cmd = list(cmd)
        # Strong references keep running tasks from being collected
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_command_line(cls, line: str) -> "CommandNotifier":
        return cls(shlex.split(line))

    def notify(self, name: str, classification: Classification) -> None:
        logger.info(f"Running notify command: cmd={shlex.join(self.cmd)}")

        env = dict(os.environ)
        env[NAME_VAR] = name
        env[EARLY_VAR] = str(0 if classification.is_late else classification.seconds)

        task = asyncio.get_running_loop().create_task(self._run(env))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, env: dict):
        try:
            proc = await asyncio.create_subprocess_exec(*self.cmd, env=env)
        except OSError as e:
            logger.warning(f"Failed to spawn command; {e}")
            return

        try:
            status = await proc.wait()
        except OSError as e:
            logger.warning(f"Failed to wait for exit: {e}")
            return

        logger.info(f"Command exited with status {status}")

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
