"""
Keep-alive Backend CLI Interface
Command line interface implemented using Typer
"""

from typing import Optional

import typer
import uvicorn

from keepalive_backend.config.loader import load_config
from keepalive_backend.core.logger import get_logger
from keepalive_backend.system.runtime import start_runtime, stop_runtime

logger = get_logger(__name__)


def start(
    host: Optional[str] = typer.Option(None, help="Server host address"),
    port: Optional[int] = typer.Option(None, help="Server port"),
    config_file: Optional[str] = typer.Option(None, help="Configuration file path"),
    debug: bool = typer.Option(False, help="Enable debug mode"),
):
    """Start the Keep-alive HTTP API service"""
    try:
        config = load_config(config_file)
        server = config.get("server", {})
        host = host or server.get("host", "127.0.0.1")
        port = port or int(server.get("port", 8765))

        logger.info("Starting Keep-alive Backend service...")
        logger.info(f"Host: {host}, Port: {port}")
        logger.info(f"Debug mode: {debug}")

        uvicorn.run(
            "keepalive_backend.app:app",
            host=host,
            port=port,
            reload=debug,
            log_level="debug" if debug else "info",
        )

    except Exception as e:
        logger.error(f"Failed to start service: {e}")
        raise typer.Exit(1)


def run(
    config_file: Optional[str] = typer.Option(None, help="Configuration file path"),
    start_session: bool = typer.Option(
        False, "--start", help="Start a keep-alive session immediately"
    ),
    duration: Optional[int] = typer.Option(
        None, min=0, help="Session length in minutes (0 = until stopped)"
    ),
):
    """Run the keep-alive service in the terminal (no HTTP server)"""
    import asyncio
    import signal

    async def run_service():
        try:
            runtime = await start_runtime(config_file)

            if duration is not None:
                runtime.session.update_config({"duration_minutes": duration})
            if start_session or runtime.store.get("enabled"):
                if not runtime.session.start_session():
                    logger.warning("Keep-alive not started, waiting for permission")

            logger.info("Keep-alive service running, press Ctrl+C to stop")

            stop_event = asyncio.Event()
            loop = asyncio.get_running_loop()

            def signal_handler(sig, frame):
                logger.info("Stop signal received...")
                loop.call_soon_threadsafe(stop_event.set)

            signal.signal(signal.SIGINT, signal_handler)
            signal.signal(signal.SIGTERM, signal_handler)

            await stop_event.wait()

            await stop_runtime(quiet=True)
            logger.info("Keep-alive service stopped")

        except Exception as e:
            logger.error(f"Run failed: {e}")
            raise typer.Exit(1)

    asyncio.run(run_service())


def main():
    """Main function"""
    app = typer.Typer()

    app.command()(start)  # Start FastAPI server
    app.command()(run)  # Run in terminal mode

    app()


if __name__ == "__main__":
    main()
