"""Async helpers for running blocking code from an async context."""

import asyncio
import functools


async def run_sync(fn, *args, **kwargs):
    """Run a blocking *fn* in the default executor without stalling the loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))
