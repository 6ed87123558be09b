import asyncio
import logging
import os
import sys
from pathlib import Path

from scripthost.scripthost_config import DEFAULT_CONFIG_NAME, ConfigError, HostConfig, load_config
from scripthost.scripthost_printer import Printer

# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)

def load_host_config() -> HostConfig:
    """Use ./scripthost.yaml when present, defaults otherwise."""
    path = Path.cwd() / DEFAULT_CONFIG_NAME
    if path.exists():
        return load_config(path)
    return HostConfig(base_directory=str(Path.cwd()))

def setup_logging(config: HostConfig):
    level = (os.environ.get("SCRIPTHOST_LOG_LEVEL") or config.log_level).upper()
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)

async def run_script_file(file_path: str, script_args=()):
    """Run a Python script file as a single submission and exit with appropriate status."""
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    try:
        config = load_host_config()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)
    setup_logging(config)
    config.base_directory = str(p.parent.resolve())
    config.file_name = str(p)
    runner = config.create_runner()
    printer = Printer()

    with config.create_pack_session(script_args) as session:
        result = await runner.execute(source, script_args, config.reference_set(), config.namespaces, session)

    if not result.is_complete_submission:
        print(f"{file_path}: SyntaxError: unexpected end of input", file=sys.stderr)
        raise SystemExit(1)
    if result.status in ('compile-error', 'error'):
        print(printer.pformat(result), file=sys.stderr)
        raise SystemExit(1)
    out = printer.pformat(result)
    if out:
        print(out)

async def main():
    """Run a script file when provided, otherwise start the interactive REPL."""
    if len(sys.argv) > 1:
        arg = sys.argv[1]
        # Treat argv[1] as a script file when it's not a flag; the rest are script args
        if not arg.startswith("-"):
            await run_script_file(arg, sys.argv[2:])
            return

    print("scripthost REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    # Setup
    try:
        config = load_host_config()
        references = config.reference_set()
        session = config.create_pack_session()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return
    setup_logging(config)
    runner = config.create_runner()
    printer = Printer()
    session.initialize_packs()
    buffer: list[str] = []

    # REPL Loop
    try:
        while True:
            try:
                raw = await ainput(".. " if buffer else ">> ")
                if raw == "":
                    raise EOFError
                line = raw.rstrip("\n")

                if not buffer:
                    if not line.strip():
                        continue
                    if line.strip() == "exit":
                        break
                elif line.strip():
                    # Inside a block: keep collecting until a blank line
                    buffer.append(line)
                    continue

                source = "\n".join(buffer) if buffer else line
                result = await runner.execute(source, (), references, config.namespaces, session)

                if not result.is_complete_submission:
                    if not buffer:
                        buffer.append(line)
                    continue
                buffer.clear()

                if result.status in ('compile-error', 'error'):
                    print(printer.pformat(result), file=sys.stderr)
                    continue

                out = printer.pformat(result)
                if out:
                    print(out)

            except EOFError:
                print("\nExiting.")
                break
            except Exception as e:
                # Usage and configuration errors; script failures arrive as results
                buffer.clear()
                print(f"Error: {e}", file=sys.stderr)
    finally:
        session.terminate_packs()

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")
