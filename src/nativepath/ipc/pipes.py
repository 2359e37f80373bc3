"""Named pipe endpoints for a worker process.

The worker streams its log, input, output and state through named pipes
that the launcher names up front. This module only derives the names and
the command line arguments that announce them; opening the pipes and the
handshake with the worker happen after launch, elsewhere.
"""

import os
from dataclasses import dataclass
from typing import List, Optional

from nativepath.core.environment import Environment

NAMED_PIPE_CONNECT_TIMEOUT_ARG = "--namedPipeConnectTimeout="
LOG_PIPE_ARG = "--logPipe="
INPUT_ARG = "--input="
INPUT_IS_PIPE_ARG = "--inputIsPipe"
OUTPUT_ARG = "--output="
OUTPUT_IS_PIPE_ARG = "--outputIsPipe"
RESTORE_ARG = "--restore="
RESTORE_IS_PIPE_ARG = "--restoreIsPipe"
PERSIST_ARG = "--persist="
PERSIST_IS_PIPE_ARG = "--persistIsPipe"


@dataclass(frozen=True)
class ProcessPipes:
    """Pipe names for one worker process.

    Attributes:
        log_pipe: Pipe the worker writes its log to.
        input_pipe: Pipe the worker reads records from.
        output_pipe: Pipe the worker writes results to.
        restore_pipe: Pipe the worker reads model state from.
        persist_pipe: Pipe the worker writes model state to.
        connect_timeout_sec: How long the worker waits for each pipe.
    """

    log_pipe: Optional[str] = None
    input_pipe: Optional[str] = None
    output_pipe: Optional[str] = None
    restore_pipe: Optional[str] = None
    persist_pipe: Optional[str] = None
    connect_timeout_sec: int = 10

    @classmethod
    def for_job(
        cls,
        env: Environment,
        process_name: str,
        job_id: str,
        want_log: bool = True,
        want_input: bool = True,
        want_output: bool = True,
        want_restore: bool = False,
        want_persist: bool = False,
        connect_timeout_sec: int = 10,
    ) -> "ProcessPipes":
        """Name the wanted pipes ``<pipe dir>/<process>_<kind>_<job>_<pid>``.

        The launcher's pid keeps names distinct when two launchers on one
        host start the same job.
        """
        pid = os.getpid()

        def name(kind: str, wanted: bool) -> Optional[str]:
            if not wanted:
                return None
            return str(env.named_pipe_dir / f"{process_name}_{kind}_{job_id}_{pid}")

        return cls(
            log_pipe=name("log", want_log),
            input_pipe=name("input", want_input),
            output_pipe=name("output", want_output),
            restore_pipe=name("restore", want_restore),
            persist_pipe=name("persist", want_persist),
            connect_timeout_sec=connect_timeout_sec,
        )

    def add_args(self, command: List[str]) -> None:
        """Append the pipe arguments for every configured pipe."""
        command.append(f"{NAMED_PIPE_CONNECT_TIMEOUT_ARG}{self.connect_timeout_sec}")
        if self.log_pipe:
            command.append(LOG_PIPE_ARG + self.log_pipe)
        if self.input_pipe:
            command.append(INPUT_ARG + self.input_pipe)
            command.append(INPUT_IS_PIPE_ARG)
        if self.output_pipe:
            command.append(OUTPUT_ARG + self.output_pipe)
            command.append(OUTPUT_IS_PIPE_ARG)
        if self.restore_pipe:
            command.append(RESTORE_ARG + self.restore_pipe)
            command.append(RESTORE_IS_PIPE_ARG)
        if self.persist_pipe:
            command.append(PERSIST_ARG + self.persist_pipe)
            command.append(PERSIST_IS_PIPE_ARG)
