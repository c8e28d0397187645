"""Bounded-concurrency execution of one coroutine per package.

``run_topologically`` holds each package back until its local dependencies
have finished; ``run_parallel`` ignores the graph. Both stop on the first
failure, cancel the remaining work and re-raise that failure as-is.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from monoctl.domain.package import Package
    from monoctl.infrastructure.package_graph import PackageGraph

_R = TypeVar("_R")


async def run_topologically(
    graph: PackageGraph,
    runner: Callable[[Package], Awaitable[_R]],
    *,
    concurrency: int,
) -> dict[str, _R]:
    """Run *runner* for every package, dependencies first.

    At most *concurrency* runners are in flight. Returns results by package
    name in completion order.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))
    finished = {name: asyncio.Event() for name in graph}
    results: dict[str, _R] = {}

    async def _run(pkg: Package) -> None:
        for dep in graph.blocking_dependencies(pkg.name):
            await finished[dep].wait()
        async with semaphore:
            results[pkg.name] = await runner(pkg)
        finished[pkg.name].set()

    await _gather_first_error(_run(pkg) for pkg in graph.packages)
    return results


async def run_parallel(
    packages: Iterable[Package],
    runner: Callable[[Package], Awaitable[_R]],
    *,
    concurrency: int,
) -> dict[str, _R]:
    """Run *runner* for every package with no ordering constraints."""
    semaphore = asyncio.Semaphore(max(1, concurrency))
    results: dict[str, _R] = {}

    async def _run(pkg: Package) -> None:
        async with semaphore:
            results[pkg.name] = await runner(pkg)

    await _gather_first_error(_run(pkg) for pkg in packages)
    return results


async def _gather_first_error(coros: Iterable[Awaitable[None]]) -> None:
    try:
        async with asyncio.TaskGroup() as group:
            for coro in coros:
                group.create_task(coro)  # type: ignore[arg-type]
    except BaseExceptionGroup as eg:
        raise _first_leaf(eg) from None


def _first_leaf(eg: BaseExceptionGroup) -> BaseException:
    first = eg.exceptions[0]
    if isinstance(first, BaseExceptionGroup):
        return _first_leaf(first)
    return first
