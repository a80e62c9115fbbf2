import asyncio
import os
import sys
from pathlib import Path
from typing import Optional

from eso.eso_controller import ExecutionController
from eso.eso_errors import ControllerError
from eso.eso_languages import LANGUAGES, create_engine
from eso.eso_printer import Printer
from eso.eso_serialize import result_message, serialize

USAGE = "usage: esorun.py LANGUAGE FILE [INPUT] [--debug | --json | --yaml]"

DUMP_FLAGS = {"--json": "json", "--yaml": "yaml"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        return int(raw) if raw.strip() else default
    except ValueError:
        print(f"Warning: ignoring invalid {name}={raw!r}", file=sys.stderr)
        return default


# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)


def _write_output(result):
    if result.output:
        sys.stdout.write(result.output)
        sys.stdout.flush()


def _load_program(language: str, file_path: str):
    """Build a controller for `language` and read the program source."""
    try:
        controller = ExecutionController(create_engine(language))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)
    try:
        source = Path(file_path).read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    return controller, source


def _prepare(controller: ExecutionController, source: str, user_input: str):
    err = controller.prepare(source, user_input)
    if err is not None:
        print(err.format_error(source), file=sys.stderr)
        raise SystemExit(1)


async def run_program_file(language: str, file_path: str, user_input: str = "",
                           dump: Optional[str] = None):
    """
    Run a program to completion and exit with appropriate status. With `dump`
    set to "json" or "yaml", the final step result follows the program output
    as a transport message.
    """
    controller, source = _load_program(language, file_path)
    _prepare(controller, source, user_input)

    interval = _env_int("ESO_INTERVAL", 0)
    max_steps = _env_int("ESO_MAX_STEPS", 0)
    steps = 0
    tail = ""

    def on_result(result):
        nonlocal steps, tail
        steps += 1
        _write_output(result)
        if result.output:
            tail = result.output
        if max_steps and steps >= max_steps and result.next_location is not None:
            controller.stop()

    last = await controller.execute_all(interval, on_result)
    # Keep the shell prompt off the program's last line
    if tail and not tail.endswith("\n"):
        print()
    if dump is not None and last is not None:
        print(serialize(result_message(last), fmt=dump))
    if max_steps and controller.state == 'idle':
        print(f"Error: step limit of {max_steps} exceeded", file=sys.stderr)
        raise SystemExit(2)
    if last is not None and last.error is not None:
        print(last.error.format_error(), file=sys.stderr)
        raise SystemExit(1)


async def debug_program_file(language: str, file_path: str, user_input: str = ""):
    """Interactive prompt driving an ExecutionController over one program."""
    controller, source = _load_program(language, file_path)
    _prepare(controller, source, user_input)
    printer = Printer()
    interval = _env_int("ESO_INTERVAL", 0)
    name = controller.engine.name
    run_task = None

    async def run_in_background():
        last = await controller.execute_all(interval, _write_output)
        if last is not None:
            print()
            print(printer.report(last, name))

    print(f"{name} debugger: run, step, pause, wait, break N..., state, reset, exit")

    while True:
        try:
            raw = await ainput("(eso) ")
            if raw == "":
                raise EOFError
            parts = raw.split()
            if not parts:
                continue
            cmd, args = parts[0], parts[1:]

            if cmd == "exit":
                break
            elif cmd == "run":
                if run_task is not None and not run_task.done():
                    print("Error: already running", file=sys.stderr)
                    continue
                # Surface state errors now, not from inside the task
                if controller.state not in ('ready', 'paused'):
                    raise ControllerError(f"Cannot run while {controller.state}")
                run_task = asyncio.create_task(run_in_background())
                # Let the run get going before the next prompt
                await asyncio.sleep(0)
            elif cmd == "wait":
                if run_task is not None:
                    await run_task
            elif cmd == "pause":
                result = await controller.pause()
                if run_task is not None:
                    await run_task
                elif result is not None:
                    print(printer.report(result, name))
            elif cmd == "step":
                result = controller.step()
                _write_output(result)
                if result.output:
                    print()
                print(printer.report(result, name))
            elif cmd == "break":
                lines = [int(a) - 1 for a in args]
                controller.update_breakpoints(lines)
                shown = ", ".join(args) if args else "none"
                print(f"breakpoints: {shown}")
            elif cmd == "state":
                result = controller.last_result
                print(f"status: {controller.state}")
                if result is not None:
                    print(printer.pformat(result))
            elif cmd == "reset":
                if run_task is not None and not run_task.done():
                    controller.stop()
                    await run_task
                controller.stop()
                _prepare(controller, source, user_input)
                print("reset")
            else:
                print(f"Error: unknown command {cmd!r}", file=sys.stderr)

        except EOFError:
            print("\nExiting.")
            break
        except (ControllerError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)

    if run_task is not None and not run_task.done():
        controller.stop()
        await run_task


async def main():
    """Run a program file, or debug it step by step with --debug."""
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    flags = {a for a in sys.argv[1:] if a.startswith("--")}
    dumps = [DUMP_FLAGS[f] for f in flags if f in DUMP_FLAGS]
    bad_flags = flags - {"--debug"} - set(DUMP_FLAGS)
    if len(args) < 2 or bad_flags or len(dumps) > 1 or (dumps and "--debug" in flags):
        print(USAGE, file=sys.stderr)
        print(f"languages: {', '.join(sorted(LANGUAGES))}", file=sys.stderr)
        raise SystemExit(2)

    language, file_path = args[0], args[1]
    user_input = args[2] if len(args) > 2 else ""
    if "--debug" in flags:
        await debug_program_file(language, file_path, user_input)
    else:
        await run_program_file(language, file_path, user_input, dump=dumps[0] if dumps else None)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")
