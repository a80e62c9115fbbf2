"""
The execution controller: drives a LanguageEngine one step at a time and
turns those steps into a pausable, resumable, breakpoint-aware run.

Typical host usage:

    controller = ExecutionController(create_engine("chef"))
    err = controller.prepare(code, user_input)
    if err is None:
        async for result in controller.run(interval=20):
            show(result)

The controller is single-consumer: at most one `run` drives the engine at a
time, and `pause()` may be awaited from any number of concurrent tasks. A
consumer that leaves `run` early should close it (`aclose()`, or
`contextlib.aclosing`) so the controller settles in `paused` at once.
"""
import asyncio
import contextlib
import os
import sys
from typing import AsyncIterator, Awaitable, Callable, Iterable, List, Literal, Optional, Set, Union

from eso.eso_datatypes import StepResult
from eso.eso_engine import LanguageEngine
from eso.eso_errors import ControllerError, ParseError

ControllerState = Literal['idle', 'ready', 'running', 'paused', 'error', 'done']

ResultCallback = Callable[[StepResult], Union[None, Awaitable[None]]]


def _dbg(*parts):
    if os.environ.get("ESO_DEBUG"):
        print("[DBG]", "controller:", *parts, file=sys.stderr)


class ExecutionController:
    def __init__(self, engine: LanguageEngine):
        self.engine = engine
        self.state: ControllerState = 'idle'
        self._breakpoints: Set[int] = set()
        self._pause_waiters: List[asyncio.Future] = []
        # Bumped by every run and stop; a run whose generation is stale ends itself
        self._generation = 0
        self._result: Optional[StepResult] = None

    @property
    def last_result(self) -> Optional[StepResult]:
        return self._result

    @property
    def breakpoints(self) -> Set[int]:
        return set(self._breakpoints)

    def _require(self, *allowed: str, action: str) -> None:
        if self.state not in allowed:
            raise ControllerError(f"Cannot {action} while {self.state}")

    def _set_state(self, state: ControllerState) -> None:
        if state != self.state:
            _dbg(self.state, "->", state)
        self.state = state

    # --- Lifecycle ---

    def prepare(self, code: str, user_input: str = "") -> Optional[ParseError]:
        """
        Load a program into the engine. Syntax problems are returned, not raised,
        and leave the controller untouched.
        """
        self._require('idle', 'ready', 'done', 'error', action="prepare")
        err = self.engine.prepare(code, user_input)
        if err is not None:
            return err
        self._result = None
        self._set_state('ready')
        return None

    def validate_code(self, code: str) -> Optional[ParseError]:
        return self.engine.validate_code(code)

    def update_breakpoints(self, lines: Iterable[int]) -> None:
        """Replace the breakpoint set with these zero-indexed line numbers."""
        self._breakpoints = set(lines)

    def reset_state(self) -> None:
        self.engine.reset_state()
        self._result = None
        self._generation += 1
        self._release_pause_waiters(None)
        self._set_state('idle')

    # --- Execution ---

    async def run(self, interval: float = 0) -> AsyncIterator[StepResult]:
        """
        Execute steps until the program ends, fails, pauses or hits a breakpoint,
        yielding every step's result. `interval` is the delay between steps in
        milliseconds.
        """
        self._require('ready', 'paused', action="run")
        self._generation += 1
        generation = self._generation
        self._set_state('running')
        try:
            while True:
                if generation != self._generation:
                    return

                result = self.engine.execute_step()
                self._result = result

                if result.error is not None:
                    _dbg("runtime error:", result.error.message)
                    self._set_state('error')
                    self._release_pause_waiters(result)
                    yield result
                    return

                if result.next_location is None:
                    self._set_state('done')
                    self._release_pause_waiters(result)
                    yield result
                    return

                if self._pause_waiters:
                    result = self._result = result.mark_paused()
                    self._set_state('paused')
                    self._release_pause_waiters(result)
                    yield result
                    return

                if result.next_location.start_line in self._breakpoints:
                    _dbg("breakpoint at line", result.next_location.start_line)
                    result = self._result = result.mark_paused()
                    self._set_state('paused')
                    yield result
                    return

                yield result
                if generation != self._generation:
                    return
                await asyncio.sleep(interval / 1000)
        finally:
            # An abandoned run can be picked up again with `resume`
            if generation == self._generation and self.state == 'running':
                self._set_state('paused')
                self._release_pause_waiters(self._result)

    def resume(self, interval: float = 0) -> AsyncIterator[StepResult]:
        return self.run(interval)

    async def execute_all(self, interval: float = 0,
                          on_result: Optional[ResultCallback] = None) -> Optional[StepResult]:
        """Run to the next stopping point, passing each result to `on_result`."""
        last = None
        async with contextlib.aclosing(self.run(interval)) as results:
            async for result in results:
                last = result
                if on_result is not None:
                    ret = on_result(result)
                    if asyncio.iscoroutine(ret):
                        await ret
        return last

    async def pause(self) -> Optional[StepResult]:
        """
        Ask a running program to pause after its current step, and wait until it has.
        Returns the paused result; returns at once when nothing is running.
        """
        if self.state != 'running':
            return self._result
        waiter = asyncio.get_running_loop().create_future()
        self._pause_waiters.append(waiter)
        return await waiter

    def step(self) -> StepResult:
        """Execute exactly one step from a ready or paused program."""
        self._require('ready', 'paused', action="step")
        result = self.engine.execute_step().mark_paused()
        self._result = result
        if result.error is not None:
            self._set_state('error')
        elif result.next_location is None:
            self._set_state('done')
        else:
            self._set_state('paused')
        return result

    def stop(self) -> None:
        """End any run at its next check and discard the engine state."""
        if self.state == 'idle':
            return
        self._generation += 1
        self._release_pause_waiters(self._result)
        self.engine.reset_state()
        self._result = None
        self._set_state('idle')

    def _release_pause_waiters(self, result: Optional[StepResult]) -> None:
        waiters, self._pause_waiters = self._pause_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(result)
