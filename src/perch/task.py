"""Deferred computations.

A ``Task`` is a description of work. Building and composing tasks never
performs that work; ``run()`` does, once per call, on the caller's thread.
Nothing is memoized: running a task twice runs the work twice.

Usage::

    from perch.task import Task

    load = Task.delay(read_config, "app.toml")
    port = load.map(lambda cfg: cfg["port"])

    port.run()  # reads the file
    port.run()  # reads it again

Tasks are node trees interpreted by an explicit loop with a continuation
stack, so arbitrarily long ``flat_map`` chains run without recursion.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from functools import partial
from typing import Any, Generic, TypeVar

import anyio
import anyio.to_thread

logger = logging.getLogger("perch.task")

T = TypeVar("T")
U = TypeVar("U")


# -- Nodes --------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class _Pure:
    value: Any


@dataclass(frozen=True, slots=True)
class _Delay:
    thunk: Callable[[], Any]


@dataclass(frozen=True, slots=True)
class _Suspend:
    """Thunk that returns the next ``Task`` to run."""

    thunk: Callable[[], Task[Any]]


@dataclass(frozen=True, slots=True)
class _Fail:
    error: BaseException


@dataclass(frozen=True, slots=True)
class _Bind:
    source: Task[Any]
    fn: Callable[[Any], Task[Any]]


@dataclass(frozen=True, slots=True)
class _Handle:
    source: Task[Any]
    handler: Callable[[Exception], Task[Any]]


@dataclass(frozen=True, slots=True)
class _HandlerFrame:
    """Continuation-stack marker: recovers failures, skipped on success."""

    handler: Callable[[Exception], Task[Any]]


@dataclass(frozen=True, slots=True)
class Attempt(Generic[T]):
    """Outcome of ``Task.attempt()`` — either a value or the raised error."""

    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def get(self) -> T:
        """Return the value, or re-raise the captured error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def _expect_task(obj: object, origin: Callable[..., Any]) -> Task[Any]:
    if not isinstance(obj, Task):
        name = getattr(origin, "__qualname__", repr(origin))
        msg = f"{name} returned {type(obj).__name__}, expected Task"
        raise TypeError(msg)
    return obj


class Task(Generic[T]):
    """A deferred, composable computation producing a ``T`` when run.

    Construct with ``Task.pure``, ``Task.delay``, ``Task.suspend`` or
    ``Task.fail``; compose with ``map``/``flat_map``/``recover``; execute
    with ``run()`` (or an engine: ``run_async()``, ``run_in()``).
    """

    __slots__ = ("_node",)

    def __init__(self, node: _Pure | _Delay | _Suspend | _Fail | _Bind | _Handle) -> None:
        self._node = node

    def __repr__(self) -> str:
        return f"Task({type(self._node).__name__.lstrip('_')})"

    # -- Construction --

    @classmethod
    def pure(cls, value: T) -> Task[T]:
        """A task that yields an already-computed value."""
        return cls(_Pure(value))

    @classmethod
    def delay(cls, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Task[T]:
        """A task that calls ``fn(*args, **kwargs)`` each time it runs."""
        if args or kwargs:
            fn = partial(fn, *args, **kwargs)
        return cls(_Delay(fn))

    @classmethod
    def suspend(cls, fn: Callable[[], Task[T]]) -> Task[T]:
        """A task whose body is produced by *fn* at run time.

        *fn* must return a ``Task``; that task is then run in place.
        """
        return cls(_Suspend(fn))

    @classmethod
    def fail(cls, error: BaseException) -> Task[Any]:
        """A task that raises *error* when run."""
        return cls(_Fail(error))

    @classmethod
    def unit(cls) -> Task[None]:
        return cls(_Pure(None))

    @classmethod
    def sequence(cls, tasks: Iterable[Task[T]]) -> Task[list[T]]:
        """Run *tasks* left to right, collecting their results."""
        pending = tuple(tasks)

        def collect() -> Task[list[T]]:
            results: list[T] = []

            def step(index: int) -> Task[list[T]]:
                if index == len(pending):
                    return Task.pure(results)

                def keep(value: T) -> Task[list[T]]:
                    results.append(value)
                    return step(index + 1)

                return pending[index].flat_map(keep)

            return step(0)

        return cls.suspend(collect)

    @classmethod
    def traverse(cls, items: Iterable[U], fn: Callable[[U], Task[T]]) -> Task[list[T]]:
        """Map each item to a task with *fn*, then ``sequence`` them."""
        snapshot = tuple(items)
        return cls.suspend(lambda: cls.sequence(fn(item) for item in snapshot))

    # -- Composition --

    def flat_map(self, fn: Callable[[T], Task[U]]) -> Task[U]:
        """Run this task, feed its result to *fn*, then run the task *fn* returns."""
        return Task(_Bind(self, fn))

    def map(self, fn: Callable[[T], U]) -> Task[U]:
        """Transform the result with a plain function."""
        return Task(_Bind(self, lambda value: Task(_Pure(fn(value)))))

    def and_then(self, other: Task[U]) -> Task[U]:
        """Run this task, discard its result, then run *other*."""
        return Task(_Bind(self, lambda _: other))

    def __rshift__(self, other: Task[U]) -> Task[U]:
        return self.and_then(other)

    def recover_with(self, handler: Callable[[Exception], Task[T]]) -> Task[T]:
        """On failure, continue with the task returned by ``handler(error)``."""
        return Task(_Handle(self, handler))

    def recover(self, handler: Callable[[Exception], T]) -> Task[T]:
        """On failure, yield ``handler(error)`` instead of raising."""
        return Task(_Handle(self, lambda exc: Task(_Pure(handler(exc)))))

    def attempt(self) -> Task[Attempt[T]]:
        """Capture success or failure as an ``Attempt`` value."""
        return self.map(lambda value: Attempt(value=value)).recover(
            lambda exc: Attempt(error=exc)
        )

    def ensure(self, finalizer: Task[Any]) -> Task[T]:
        """Run *finalizer* after this task, whether it succeeds or fails."""

        def on_error(exc: Exception) -> Task[T]:
            return finalizer.and_then(Task.fail(exc))

        return self.recover_with(on_error).flat_map(
            lambda value: finalizer.map(lambda _: value)
        )

    # -- Execution --

    def run(self) -> T:
        """Execute the task on the calling thread and return its result.

        Exceptions raised by the work propagate to the caller unless a
        ``recover``/``recover_with`` stage handles them.
        """
        stack: list[Callable[[Any], Task[Any]] | _HandlerFrame] = []
        current: Task[Any] = self

        while True:
            node = current._node

            if isinstance(node, _Bind):
                stack.append(node.fn)
                current = node.source
                continue
            if isinstance(node, _Handle):
                stack.append(_HandlerFrame(node.handler))
                current = node.source
                continue

            try:
                if isinstance(node, _Pure):
                    value = node.value
                elif isinstance(node, _Delay):
                    value = node.thunk()
                elif isinstance(node, _Suspend):
                    current = _expect_task(node.thunk(), node.thunk)
                    continue
                else:
                    raise node.error.with_traceback(None)
            except Exception as exc:
                current = self._unwind(stack, exc)
                continue

            # Success: resume the nearest bind continuation.
            while stack:
                frame = stack.pop()
                if isinstance(frame, _HandlerFrame):
                    continue
                current = Task(_Suspend(partial(_apply, frame, value)))
                break
            else:
                return value

    @staticmethod
    def _unwind(
        stack: list[Callable[[Any], Task[Any]] | _HandlerFrame],
        exc: Exception,
    ) -> Task[Any]:
        """Drop bind frames up to the nearest handler; re-raise if none."""
        while stack:
            frame = stack.pop()
            if isinstance(frame, _HandlerFrame):
                return Task(_Suspend(partial(_apply, frame.handler, exc)))
        raise exc

    async def run_async(self, limiter: anyio.CapacityLimiter | None = None) -> T:
        """Run on an anyio worker thread and await the result."""
        try:
            return await anyio.to_thread.run_sync(self.run, limiter=limiter)
        except Exception:
            logger.debug("task failed on worker thread: %r", self, exc_info=True)
            raise

    def run_in(self, executor: Executor) -> Future[T]:
        """Submit the task to a ``concurrent.futures`` executor."""
        future = executor.submit(self.run)
        future.add_done_callback(_log_future_failure)
        return future


def _apply(fn: Callable[[Any], Task[Any]], value: Any) -> Task[Any]:
    return _expect_task(fn(value), fn)


def _log_future_failure(future: Future[Any]) -> None:
    if not future.cancelled() and future.exception() is not None:
        logger.debug("task failed in executor", exc_info=future.exception())
