import sys
from os import getenv
from pathlib import Path

from anyio.from_thread import start_blocking_portal
from pydantic.alias_generators import to_camel
from pytauri import (
    Commands,
    builder_factory,
    context_factory,
)

from keepalive_backend.core.events import register_emit_handler
from keepalive_backend.handlers import register_pytauri_commands
from keepalive_backend.system.runtime import start_runtime, stop_runtime

# Only enabled when PYTAURI_GEN_TS=1 is explicitly set (disabled by default)
# This automatically disables in packaged applications
PYTAURI_GEN_TS = getenv("PYTAURI_GEN_TS") == "1"

commands = Commands(experimental_gen_ts=PYTAURI_GEN_TS)

# Auto-register all @api_handler decorated functions as PyTauri commands
register_pytauri_commands(commands)

# Seconds the window close waits for the runtime to stop
CLEANUP_TIMEOUT = 4.0


def log_main(msg):
    """Reliable logging using stderr with flush"""
    sys.stderr.write(f"[Main] {msg}\n")
    sys.stderr.flush()


async def _start_backend():
    runtime = await start_runtime()
    # Restore the session that was active when the app last quit
    if runtime.store.get("enabled") and runtime.session.has_permission:
        runtime.session.start_session()


def main() -> int:
    with start_blocking_portal("asyncio") as portal:
        if PYTAURI_GEN_TS:
            output_dir = (
                Path(__file__).parent.parent.parent.parent / "src" / "lib" / "client"
            )
            json2ts_cmd = "pnpm json2ts --format=false"

            portal.start_task_soon(
                lambda: commands.experimental_gen_ts_background(
                    output_dir, json2ts_cmd, cmd_alias=to_camel
                )
            )

        context = context_factory()

        app = builder_factory().build(
            context=context,
            invoke_handler=commands.generate_handler(portal),
        )

        log_main("Registering Tauri AppHandle for event emission...")
        register_emit_handler(app.handle())
        log_main("✅ Tauri AppHandle registered successfully")

        # Runtime timers live on the portal's event loop, the same loop that runs commands
        try:
            portal.call(_start_backend)
            log_main("✅ Keep-alive runtime started")
        except Exception as e:
            log_main(f"⚠️  Keep-alive runtime failed to start: {e}")

        log_main("Starting Tauri application...")
        exit_code = app.run_return()

        log_main("Tauri application exited, cleaning up backend resources...")
        try:
            future = portal.start_task_soon(stop_runtime)
            future.result(timeout=CLEANUP_TIMEOUT)
            log_main("✅ Backend stopped successfully")
        except TimeoutError:
            log_main("⚠️  Backend cleanup timeout, but allowing app to exit")
        except Exception as e:
            log_main(f"⚠️  Backend stop error, continuing: {e}")

        log_main("Application exiting, process ending")
        return exit_code
