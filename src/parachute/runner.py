"""
runner.py - top-level driver
----------------------------

Wires a ShutdownCoordinator around an application coroutine:

    async def main(coordinator):
        server = await start_server()
        coordinator.register_task("close server", server.close)

    parachute.run(main, ShutdownConfig(timeout=10))

The application keeps running until a trigger fires. An exception escaping
main() is treated as an uncaught error (graceful exit, status 1).
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from parachute.lifecycle.process_exit import exit_process
from parachute.lifecycle.shutdown_coordinator import ExitHandler, ShutdownCoordinator
from parachute.models.config import ShutdownConfig
from parachute.models.exit_task import ShutdownOutcome
from parachute.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.LIFECYCLE)

MainFn = Callable[[ShutdownCoordinator], Awaitable[Any]]


async def serve(
    main: MainFn,
    config: Optional[ShutdownConfig] = None,
    *,
    exit_handler: Optional[ExitHandler] = exit_process
) -> ShutdownOutcome:
    """Run main() under a prepared coordinator until shutdown completes."""
    coordinator = ShutdownCoordinator(config, exit_handler=exit_handler)
    coordinator.prepare()

    app_task = asyncio.ensure_future(main(coordinator))
    coordinator.listener.watch(app_task)

    log.info("🏁 Application initialized. Waiting for exit signal...")
    try:
        return await coordinator.wait_for_shutdown()
    finally:
        coordinator.release()
        if not app_task.done():
            app_task.cancel()


def run(
    main: MainFn,
    config: Optional[ShutdownConfig] = None,
    *,
    exit_handler: Optional[ExitHandler] = exit_process
) -> ShutdownOutcome:
    """
    Run main() on a new event loop with graceful exit enabled.

    With the default exit handler this never returns: the process exits
    with the shutdown status. With exit_handler=None the outcome is
    returned instead.
    """
    config = config or ShutdownConfig()
    get_logger().min_level = config.level
    return asyncio.run(serve(main, config, exit_handler=exit_handler))
