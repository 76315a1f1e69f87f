#!/usr/bin/env python3
"""
Generic service with a slow close

Runs until Ctrl+C or a termination signal, then closes the service. The
close takes 8 seconds, inside the default 20 second timeout, so the process
exits with status 0. Start it with `--close-time 30` to see the forced exit.
"""
import argparse
import asyncio
import functools
import os

import parachute
from parachute import ShutdownConfig


class FakeService:
    def __init__(self, close_time: float):
        self.close_time = close_time

    async def close(self):
        # Simulate waiting for pending requests
        await asyncio.sleep(self.close_time)


async def main(coordinator, close_time: float):
    service = FakeService(close_time)
    coordinator.register_task("close service", service.close)

    print(f"Process running with PID {os.getpid()}")
    print("Press Control+C or send a signal to test the closing behaviour")
    await asyncio.Event().wait()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="parachute demo service")
    parser.add_argument("--close-time", type=float, default=8.0)
    parser.add_argument("--config", help="YAML file with a shutdown: section")
    args = parser.parse_args()

    config = parachute.load_config(args.config) if args.config else ShutdownConfig()
    parachute.run(functools.partial(main, close_time=args.close_time), config)
