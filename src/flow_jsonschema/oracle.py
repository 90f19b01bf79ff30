"""Invoking the flow binary, including a retry strategy for hanging commands."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import ujson as json
from rich.console import Console

from .config import GeneratorConfig
from .delay import ABANDON, CancellableDelay, schedule
from .errors import (
    RETRYABLE_ERRORS,
    OracleExhaustedError,
    OracleInvocationError,
    OracleKilledError,
    OracleTimeoutError,
)

console = Console(stderr=True)

# `flow status` exits with this code when the server is up but the code has type errors.
FLOW_STATUS_TYPE_ERRORS = 2


class OracleHandle(Protocol):
    """A started oracle process."""

    killed: bool

    async def wait(self) -> str:
        ...

    def kill(self) -> None:
        ...


class OracleSpawner(Protocol):
    async def spawn(self, args: Sequence[str], timeout: float | None = None) -> OracleHandle:
        ...


class OracleProcess:
    """One running flow process and its captured output."""

    def __init__(
        self,
        proc: asyncio.subprocess.Process,
        args: Sequence[str],
        timeout: float | None = None,
    ) -> None:
        self.proc = proc
        self.args = list(args)
        self.timeout = timeout
        self.killed = False

    async def wait(self) -> str:
        try:
            stdout, stderr = await asyncio.wait_for(self.proc.communicate(), self.timeout)
        except asyncio.TimeoutError as exc:
            self.kill()
            await self.proc.wait()
            msg = f"flow {' '.join(self.args)} timed out after {self.timeout}s"
            raise OracleTimeoutError(msg, self.args, self.proc.returncode) from exc
        returncode = self.proc.returncode
        err_text = stderr.decode("utf-8", errors="replace")
        if self.killed or (returncode is not None and returncode < 0):
            msg = f"flow {' '.join(self.args)} was killed"
            raise OracleKilledError(msg, self.args, returncode, err_text)
        if returncode != 0:
            msg = f"flow {' '.join(self.args)} exited with code {returncode}: {err_text.strip()}"
            raise OracleInvocationError(msg, self.args, returncode, err_text)
        return stdout.decode("utf-8")

    def kill(self) -> None:
        if self.proc.returncode is not None:
            return
        self.killed = True
        try:
            self.proc.kill()
        except ProcessLookupError:
            pass


class OracleClient:
    """Runs flow once per call; no retries."""

    def __init__(self, flow_path: str = "flow") -> None:
        self.flow_path = flow_path

    async def spawn(self, args: Sequence[str], timeout: float | None = None) -> OracleProcess:
        try:
            proc = await asyncio.create_subprocess_exec(
                self.flow_path,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise OracleInvocationError(f"failed to start {self.flow_path}: {exc}", args) from exc
        return OracleProcess(proc, args, timeout)

    async def invoke(self, args: Sequence[str]) -> str:
        process = await self.spawn(args)
        try:
            return await process.wait()
        except asyncio.CancelledError:
            process.kill()
            raise


@dataclass
class InFlightAttempt:
    slot: int
    process: OracleHandle
    task: asyncio.Task[str]


class ResilientInvoker:
    """Races redundant flow processes so one hung instance cannot stall a call.

    Each round launches one more process and waits ``retry_interval * (round + 1)``
    for any live process to finish. Earlier processes keep running and can still
    win a later round. Timed out or killed processes are ignored; any other
    failure is raised as-is. An attempt that settles while another is still
    spawning is read by the next race. Everything still running is killed on
    return.
    """

    def __init__(
        self,
        client: OracleSpawner,
        max_retries: int = 20,
        retry_interval: float = 0.1,
        call_timeout: float | None = 1.0,
    ) -> None:
        self.client = client
        self.max_retries = max_retries
        self.retry_interval = retry_interval
        self.call_timeout = call_timeout

    @classmethod
    def from_config(cls, client: OracleSpawner, config: GeneratorConfig) -> ResilientInvoker:
        return cls(
            client,
            max_retries=config.max_retries,
            retry_interval=config.retry_interval,
            call_timeout=config.call_timeout,
        )

    def round_timeout(self, round_index: int) -> float:
        """Escalating wait before launching the next redundant attempt."""
        return self.retry_interval * (round_index + 1)

    async def call(self, args: Sequence[str]) -> str:
        args = list(args)
        live: dict[int, InFlightAttempt] = {}
        try:
            for round_index in range(self.max_retries):
                await self._launch(args, round_index, live)
                delay = schedule(self.round_timeout(round_index))
                try:
                    finished = await self._race(live, delay)
                finally:
                    delay.cancel(ABANDON)
                if not finished:
                    continue
                try:
                    return self._first_result(finished)
                except RETRYABLE_ERRORS:
                    continue

            # No more launches: wait for whatever is still running.
            while live:
                finished = await self._race(live, None)
                try:
                    return self._first_result(finished)
                except RETRYABLE_ERRORS:
                    continue

            msg = f"max retry count exceeded while executing flow {json.dumps(args)}"
            raise OracleExhaustedError(msg)
        finally:
            self._kill_all(live)

    async def _launch(self, args: list[str], slot: int, live: dict[int, InFlightAttempt]) -> None:
        try:
            process = await self.client.spawn(args, timeout=self.call_timeout)
        except OracleInvocationError as exc:
            console.print(f"[yellow]Warning:[/] flow attempt {slot} failed to start: {exc}")
            return
        task = asyncio.ensure_future(process.wait())
        live[slot] = InFlightAttempt(slot=slot, process=process, task=task)

        def _exited(done: asyncio.Task[str]) -> None:
            # Stays in `live` until a race reads it; only mark the exception retrieved.
            if not done.cancelled():
                done.exception()

        task.add_done_callback(_exited)

    async def _race(
        self,
        live: dict[int, InFlightAttempt],
        delay: CancellableDelay | None,
    ) -> list[InFlightAttempt]:
        """Return the attempts that finished first, or [] when the delay won."""
        attempts = list(live.values())
        waiters: set[asyncio.Future] = {attempt.task for attempt in attempts}
        if delay is not None:
            waiters.add(delay.future)
        if not waiters:
            return []
        done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finished = sorted(
            (attempt for attempt in attempts if attempt.task in done),
            key=lambda attempt: attempt.slot,
        )
        for attempt in finished:
            live.pop(attempt.slot, None)
        return finished

    @staticmethod
    def _first_result(finished: list[InFlightAttempt]) -> str:
        for attempt in finished:
            if not attempt.task.cancelled() and attempt.task.exception() is None:
                return attempt.task.result()
        first = finished[0].task
        if first.cancelled():
            raise OracleKilledError("flow attempt was cancelled")
        exc = first.exception()
        if exc is None:
            return first.result()
        raise exc

    @staticmethod
    def _kill_all(live: dict[int, InFlightAttempt]) -> None:
        for attempt in list(live.values()):
            if attempt.task.done():
                continue
            try:
                if not attempt.process.killed:
                    attempt.process.kill()
            except Exception as exc:
                console.print(f"[red]Failed to kill flow attempt {attempt.slot}:[/] {exc}")
            attempt.task.cancel()
        live.clear()


class FlowOracle:
    """The flow commands the schema assembler relies on."""

    def __init__(self, client: OracleClient, invoker: ResilientInvoker) -> None:
        self.client = client
        self.invoker = invoker

    @classmethod
    def from_config(cls, config: GeneratorConfig) -> FlowOracle:
        client = OracleClient(config.flow_path)
        return cls(client, ResilientInvoker.from_config(client, config))

    async def status(self) -> None:
        """Block until the flow server answers. Type errors in the project are fine."""
        try:
            await self.client.invoke(["status", "--quiet"])
        except OracleInvocationError as exc:
            if exc.returncode == FLOW_STATUS_TYPE_ERRORS:
                return
            raise

    async def version(self) -> str:
        output = await self.client.invoke(["version", "--json"])
        return str(_load_json(output, "version", "semver"))

    async def find_module(self, module: str, from_path: str | Path) -> Path:
        output = await self.invoker.call(["find-module", "--quiet", module, str(from_path)])
        return Path(output.strip())

    async def type_at_pos(self, path: str | Path, line: int, column: int) -> str:
        """Return the alias-expanded type text at a 1-based position."""
        output = await self.invoker.call(
            [
                "type-at-pos",
                "--quiet",
                "--json",
                "--expand-type-aliases",
                str(path),
                str(line),
                str(column),
            ]
        )
        return str(_load_json(output, "type-at-pos", "type"))

    async def gen_flow_files(self, path: str | Path) -> str:
        return await self.client.invoke(["gen-flow-files", "--quiet", str(path)])


def _load_json(output: str, command: str, key: str) -> object:
    """Pull one field out of a flow ``--json`` envelope."""
    try:
        payload = json.loads(output)
    except ValueError as exc:
        raise OracleInvocationError(f"flow {command} returned invalid JSON: {output!r}") from exc
    if not isinstance(payload, dict) or key not in payload:
        raise OracleInvocationError(f"flow {command} returned no {key!r} field: {output!r}")
    return payload[key]


__all__ = [
    "FlowOracle",
    "InFlightAttempt",
    "OracleClient",
    "OracleProcess",
    "ResilientInvoker",
]
