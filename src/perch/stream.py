"""Lazy, re-runnable streams.

A ``Stream`` describes a sequence of values whose effects are ``Task``s.
Nothing is pulled, and no effect runs, until one of the ``run_*``
methods returns a task and that task is run. Each run pulls the stream
again from its source.

Usage::

    from perch.stream import Stream

    lines = (
        Stream.eval(Task.delay(fetch_page, 1))
        .flat_map(lambda page: Stream.emits(page.splitlines()))
        .filter(bool)
        .take(10)
    )
    first_ten = lines.run_log().run()
"""

from __future__ import annotations

import itertools
from collections.abc import Callable, Iterable, Iterator
from typing import Any, Generic, TypeVar

from perch.task import Task

T = TypeVar("T")
U = TypeVar("U")
S = TypeVar("S")


class Stream(Generic[T]):
    """A lazy sequence of ``T`` built from a zero-argument iterator factory."""

    __slots__ = ("_source",)

    def __init__(self, source: Callable[[], Iterator[T]]) -> None:
        self._source = source

    def __repr__(self) -> str:
        return f"Stream({getattr(self._source, '__qualname__', self._source)!r})"

    # -- Construction --

    @classmethod
    def empty(cls) -> Stream[Any]:
        return cls(lambda: iter(()))

    @classmethod
    def emit(cls, *values: T) -> Stream[T]:
        """A stream of the given values."""
        return cls(lambda: iter(values))

    @classmethod
    def emits(cls, values: Iterable[T]) -> Stream[T]:
        """A stream of *values*, snapshotted now so every run sees the same items."""
        snapshot = tuple(values)
        return cls(lambda: iter(snapshot))

    @classmethod
    def eval(cls, task: Task[T]) -> Stream[T]:
        """A single-element stream whose element is produced by running *task*."""

        def pull() -> Iterator[T]:
            yield task.run()

        return cls(pull)

    @classmethod
    def repeat_eval(cls, task: Task[T]) -> Stream[T]:
        """An infinite stream that runs *task* for every element pulled."""

        def pull() -> Iterator[T]:
            while True:
                yield task.run()

        return cls(pull)

    @classmethod
    def range(cls, start: int, stop: int | None = None, step: int = 1) -> Stream[int]:
        if stop is None:
            start, stop = 0, start
        return cls(lambda: iter(range(start, stop, step)))

    @classmethod
    def unfold(cls, seed: S, fn: Callable[[S], tuple[T, S] | None]) -> Stream[T]:
        """Build a stream from *seed*; stop when *fn* returns ``None``."""

        def pull() -> Iterator[T]:
            state = seed
            while (step := fn(state)) is not None:
                value, state = step
                yield value

        return cls(pull)

    @classmethod
    def iterate(cls, seed: T, fn: Callable[[T], T]) -> Stream[T]:
        """Infinite stream ``seed, fn(seed), fn(fn(seed)), ...``."""

        def pull() -> Iterator[T]:
            value = seed
            while True:
                yield value
                value = fn(value)

        return cls(pull)

    # -- Transformation --

    def map(self, fn: Callable[[T], U]) -> Stream[U]:
        return Stream(lambda: map(fn, self.pull()))

    def flat_map(self, fn: Callable[[T], Stream[U]]) -> Stream[U]:
        """Replace each element with the stream *fn* returns, concatenated."""

        def pull() -> Iterator[U]:
            for value in self.pull():
                yield from fn(value).pull()

        return Stream(pull)

    def filter(self, predicate: Callable[[T], bool]) -> Stream[T]:
        return Stream(lambda: filter(predicate, self.pull()))

    def take(self, n: int) -> Stream[T]:
        """The first *n* elements. Elements past *n* are never pulled."""
        return Stream(lambda: itertools.islice(self.pull(), max(n, 0)))

    def take_while(self, predicate: Callable[[T], bool]) -> Stream[T]:
        return Stream(lambda: itertools.takewhile(predicate, self.pull()))

    def drop(self, n: int) -> Stream[T]:
        return Stream(lambda: itertools.islice(self.pull(), max(n, 0), None))

    def append(self, other: Stream[T]) -> Stream[T]:
        """This stream followed by *other*."""
        return Stream(lambda: itertools.chain(self.pull(), other.pull()))

    def __add__(self, other: Stream[T]) -> Stream[T]:
        return self.append(other)

    def eval_map(self, fn: Callable[[T], Task[U]]) -> Stream[U]:
        """Run the task ``fn(element)`` for each element, emitting its result."""
        return Stream(lambda: (fn(value).run() for value in self.pull()))

    def chunk(self, size: int) -> Stream[tuple[T, ...]]:
        """Group elements into tuples of *size*; the last may be shorter."""
        if size < 1:
            msg = f"chunk size must be positive, got {size}"
            raise ValueError(msg)

        def pull() -> Iterator[tuple[T, ...]]:
            it = self.pull()
            while batch := tuple(itertools.islice(it, size)):
                yield batch

        return Stream(pull)

    def zip_with_index(self) -> Stream[tuple[T, int]]:
        return Stream(lambda: ((value, i) for i, value in enumerate(self.pull())))

    def intersperse(self, separator: T) -> Stream[T]:
        def pull() -> Iterator[T]:
            for i, value in enumerate(self.pull()):
                if i:
                    yield separator
                yield value

        return Stream(pull)

    def through(self, fn: Callable[[Stream[T]], Stream[U]]) -> Stream[U]:
        """Apply a stream-to-stream transformation (a "pipe")."""
        return fn(self)

    # -- Running --

    def pull(self) -> Iterator[T]:
        """Start a fresh pull over this stream.

        Low-level engine hook: iterating the result performs the effects.
        Prefer ``run_*`` which keep the work deferred inside a ``Task``.
        """
        return self._source()

    def run_log(self) -> Task[list[T]]:
        """Task collecting every element into a list."""
        return Task.delay(lambda: list(self.pull()))

    def run_fold(self, initial: U, fn: Callable[[U, T], U]) -> Task[U]:
        def fold() -> U:
            acc = initial
            for value in self.pull():
                acc = fn(acc, value)
            return acc

        return Task.delay(fold)

    def run_drain(self) -> Task[None]:
        """Task pulling every element for its effects, discarding values."""

        def drain() -> None:
            for _ in self.pull():
                pass

        return Task.delay(drain)

    def run_last(self) -> Task[T | None]:
        """Task yielding the final element, or ``None`` for an empty stream."""

        def last() -> T | None:
            result = None
            for value in self.pull():
                result = value
            return result

        return Task.delay(last)
