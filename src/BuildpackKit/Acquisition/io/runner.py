# === NAVMAP v1 ===
# {
#   "module": "BuildpackKit.Acquisition.io.runner",
#   "purpose": "Run external tools and two-process pipes with captured output",
#   "sections": [
#     {"id": "results", "name": "Command Results", "anchor": "RES", "kind": "api"},
#     {"id": "runner", "name": "CommandRunner", "anchor": "RUN", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Process execution for acquisition tools.

``CommandRunner`` spawns ``curl``, ``tar`` and ``unzip`` on behalf of the
engine.  Output is captured and decoded, and a non-zero exit becomes a
:class:`~BuildpackKit.Acquisition.errors.CommandError` carrying the exit code
and stderr.  Retries are never performed here; tools such as ``curl`` retry
through their own flags.

The runner is the seam that tests replace: the engine and fetchers receive it
as a dependency, so a scripted fake can stand in for real processes.
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from dataclasses import dataclass
from typing import IO, Iterable, Optional, Sequence, Tuple

from ..errors import Attribution, CommandError

__all__ = ["CommandResult", "CommandRunner"]

_LOGGER = logging.getLogger("BuildpackKit.Acquisition")


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one finished process."""

    command: Tuple[str, ...]
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


def _read_spool(spool: IO[bytes]) -> str:
    spool.seek(0)
    return _decode(spool.read())


def _launch_failure(command: Sequence[str], exc: OSError, attribution: Attribution) -> CommandError:
    exit_code = 127 if isinstance(exc, FileNotFoundError) else 1
    return CommandError(
        command,
        exit_code=exit_code,
        stderr=str(exc),
        attribution=attribution,
        reason=f"failed to launch: {exc}",
    )


class CommandRunner:
    """Execute external commands, raising :class:`CommandError` on failure."""

    def __init__(self, *, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or _LOGGER

    def run(
        self,
        command: Sequence[str],
        *,
        attribution: Attribution = Attribution.USER,
    ) -> CommandResult:
        """Run ``command`` to completion and return its captured output."""

        argv = tuple(command)
        self.logger.debug("running command", extra={"stage": "exec", "command": list(argv)})
        try:
            completed = subprocess.run(argv, capture_output=True, check=False)
        except OSError as exc:
            raise _launch_failure(argv, exc, attribution) from exc

        result = CommandResult(
            command=argv,
            exit_code=completed.returncode,
            stdout=_decode(completed.stdout),
            stderr=_decode(completed.stderr),
        )
        if not result.ok:
            raise CommandError(
                argv,
                exit_code=result.exit_code,
                stdout=result.stdout,
                stderr=result.stderr,
                attribution=attribution,
            )
        return result

    def pipe(
        self,
        producer: Sequence[str],
        consumer: Sequence[str],
        *,
        attribution: Attribution = Attribution.USER,
    ) -> Tuple[CommandResult, CommandResult]:
        """Run ``producer | consumer`` and return both results without raising.

        Both processes run concurrently; the call blocks until both exit.
        Callers decide which side's failure to report.
        """

        producer_argv, consumer_argv = tuple(producer), tuple(consumer)
        self.logger.debug(
            "running pipeline",
            extra={
                "stage": "exec",
                "producer": list(producer_argv),
                "consumer": list(consumer_argv),
            },
        )
        with tempfile.TemporaryFile() as producer_err, tempfile.TemporaryFile() as consumer_err:
            try:
                source = subprocess.Popen(
                    producer_argv, stdout=subprocess.PIPE, stderr=producer_err
                )
            except OSError as exc:
                raise _launch_failure(producer_argv, exc, attribution) from exc
            try:
                sink = subprocess.Popen(
                    consumer_argv,
                    stdin=source.stdout,
                    stdout=subprocess.DEVNULL,
                    stderr=consumer_err,
                )
            except OSError as exc:
                source.kill()
                source.wait()
                raise _launch_failure(consumer_argv, exc, attribution) from exc
            finally:
                # Only the consumer may hold the read end.
                if source.stdout is not None:
                    source.stdout.close()

            sink_code = sink.wait()
            source_code = source.wait()
            return (
                CommandResult(producer_argv, source_code, stderr=_read_spool(producer_err)),
                CommandResult(consumer_argv, sink_code, stderr=_read_spool(consumer_err)),
            )

    def feed(
        self,
        command: Sequence[str],
        chunks: Iterable[bytes],
        *,
        attribution: Attribution = Attribution.USER,
    ) -> CommandResult:
        """Write ``chunks`` into the stdin of ``command`` and wait for it.

        Exceptions raised while iterating ``chunks`` propagate after the
        process has been terminated.
        """

        argv = tuple(command)
        self.logger.debug("feeding command", extra={"stage": "exec", "command": list(argv)})
        with tempfile.TemporaryFile() as spool:
            try:
                process = subprocess.Popen(
                    argv, stdin=subprocess.PIPE, stdout=subprocess.DEVNULL, stderr=spool
                )
            except OSError as exc:
                raise _launch_failure(argv, exc, attribution) from exc

            assert process.stdin is not None
            try:
                for chunk in chunks:
                    if not chunk:
                        continue
                    try:
                        process.stdin.write(chunk)
                    except BrokenPipeError:
                        # Consumer exited early; its exit status reports why.
                        break
            except BaseException:
                process.kill()
                process.wait()
                raise
            finally:
                try:
                    process.stdin.close()
                except BrokenPipeError:
                    pass

            exit_code = process.wait()
            stderr = _read_spool(spool)

        if exit_code != 0:
            raise CommandError(argv, exit_code=exit_code, stderr=stderr, attribution=attribution)
        return CommandResult(argv, exit_code, stderr=stderr)
