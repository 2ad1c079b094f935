"""Tests for perch.task — deferred computations."""

import traceback
from concurrent.futures import ThreadPoolExecutor

import pytest

from perch.task import Attempt, Task


class Counter:
    def __init__(self) -> None:
        self.calls = 0

    def bump(self) -> int:
        self.calls += 1
        return self.calls


class TestConstruction:
    def test_pure_yields_value(self) -> None:
        assert Task.pure(42).run() == 42

    def test_delay_does_not_run_until_run(self) -> None:
        counter = Counter()
        task = Task.delay(counter.bump)
        assert counter.calls == 0
        assert task.run() == 1

    def test_delay_passes_arguments(self) -> None:
        assert Task.delay(pow, 2, 10).run() == 1024
        assert Task.delay(int, "ff", base=16).run() == 255

    def test_suspend_defers_task_creation(self) -> None:
        counter = Counter()
        task = Task.suspend(lambda: Task.pure(counter.bump()))
        assert counter.calls == 0
        assert task.run() == 1

    def test_suspend_rejects_non_task(self) -> None:
        task = Task.suspend(lambda: 5)  # type: ignore[arg-type, return-value]
        with pytest.raises(TypeError, match="expected Task"):
            task.run()

    def test_fail_raises_only_when_run(self) -> None:
        task = Task.fail(ValueError("boom"))
        with pytest.raises(ValueError, match="boom"):
            task.run()

    def test_unit(self) -> None:
        assert Task.unit().run() is None


class TestNoMemoization:
    def test_each_run_repeats_the_work(self) -> None:
        counter = Counter()
        task = Task.delay(counter.bump)
        task.run()
        task.run()
        assert counter.calls == 2

    def test_composed_chain_reruns_from_scratch(self) -> None:
        counter = Counter()
        task = Task.delay(counter.bump).map(lambda n: n * 10).flat_map(
            lambda n: Task.delay(lambda: n + counter.bump())
        )
        assert task.run() == 10 + 2
        assert task.run() == 30 + 4
        assert counter.calls == 4

    def test_failing_task_traceback_does_not_grow_across_runs(self) -> None:
        task = Task.fail(ValueError("boom")).map(str)
        depths = []
        for _ in range(3):
            with pytest.raises(ValueError) as info:
                task.run()
            depths.append(len(traceback.extract_tb(info.value.__traceback__)))
        assert depths[0] == depths[1] == depths[2]

    def test_sequence_results_are_fresh_per_run(self) -> None:
        counter = Counter()
        task = Task.sequence([Task.delay(counter.bump), Task.delay(counter.bump)])
        first = task.run()
        second = task.run()
        assert first == [1, 2]
        assert second == [3, 4]
        assert first is not second


class TestComposition:
    def test_map(self) -> None:
        assert Task.pure(3).map(lambda n: n + 1).run() == 4

    def test_map_does_not_run_source(self) -> None:
        counter = Counter()
        Task.delay(counter.bump).map(str)
        assert counter.calls == 0

    def test_flat_map_sequences(self) -> None:
        log: list[str] = []
        first = Task.delay(lambda: log.append("first") or 1)
        task = first.flat_map(lambda n: Task.delay(lambda: log.append("second") or n + 1))
        assert log == []
        assert task.run() == 2
        assert log == ["first", "second"]

    def test_flat_map_must_return_task(self) -> None:
        task = Task.pure(1).flat_map(lambda n: n + 1)  # type: ignore[arg-type, return-value]
        with pytest.raises(TypeError, match="expected Task"):
            task.run()

    def test_and_then_discards_first_result(self) -> None:
        log: list[int] = []
        task = Task.delay(log.append, 1).and_then(Task.pure("done"))
        assert task.run() == "done"
        assert log == [1]

    def test_rshift_is_and_then(self) -> None:
        assert (Task.pure(1) >> Task.pure(2)).run() == 2

    def test_failure_skips_later_stages(self) -> None:
        counter = Counter()
        task = Task.fail(RuntimeError("nope")).map(lambda _: counter.bump())
        with pytest.raises(RuntimeError):
            task.run()
        assert counter.calls == 0

    def test_error_in_map_function_surfaces_on_run(self) -> None:
        task = Task.pure(0).map(lambda n: 1 / n)
        with pytest.raises(ZeroDivisionError):
            task.run()

    def test_long_flat_map_chain_is_stack_safe(self) -> None:
        task = Task.pure(0)
        for _ in range(20_000):
            task = task.flat_map(lambda n: Task.pure(n + 1))
        assert task.run() == 20_000

    def test_deep_recursive_bind_is_stack_safe(self) -> None:
        def count_down(n: int) -> Task[int]:
            if n == 0:
                return Task.pure("done")
            return Task.pure(n - 1).flat_map(count_down)

        assert count_down(50_000).run() == "done"


class TestErrorHandling:
    def test_recover(self) -> None:
        task = Task.fail(KeyError("x")).recover(lambda exc: f"recovered {type(exc).__name__}")
        assert task.run() == "recovered KeyError"

    def test_recover_not_used_on_success(self) -> None:
        assert Task.pure(1).recover(lambda exc: 2).run() == 1

    def test_recover_with_continues_with_task(self) -> None:
        task = Task.delay(lambda: 1 / 0).recover_with(lambda exc: Task.pure(-1))
        assert task.run() == -1

    def test_recover_catches_failures_from_earlier_binds(self) -> None:
        task = (
            Task.pure(1)
            .flat_map(lambda n: Task.fail(ValueError("bad")))
            .map(lambda n: n + 1)
            .recover(lambda exc: str(exc))
        )
        assert task.run() == "bad"

    def test_failure_inside_handler_propagates(self) -> None:
        def handler(exc: Exception) -> Task[int]:
            raise LookupError("handler broke")

        task = Task.fail(ValueError("x")).recover_with(handler)
        with pytest.raises(LookupError, match="handler broke"):
            task.run()

    def test_attempt_success(self) -> None:
        result = Task.pure(5).attempt().run()
        assert result == Attempt(value=5)
        assert result.ok is True
        assert result.get() == 5

    def test_attempt_failure(self) -> None:
        error = ValueError("bad")
        result = Task.fail(error).attempt().run()
        assert result.ok is False
        assert result.error is error
        with pytest.raises(ValueError):
            result.get()

    def test_ensure_runs_finalizer_on_success(self) -> None:
        log: list[str] = []
        task = Task.pure("value").ensure(Task.delay(log.append, "cleanup"))
        assert task.run() == "value"
        assert log == ["cleanup"]

    def test_ensure_runs_finalizer_on_failure(self) -> None:
        log: list[str] = []
        task = Task.fail(OSError("disk")).ensure(Task.delay(log.append, "cleanup"))
        with pytest.raises(OSError, match="disk"):
            task.run()
        assert log == ["cleanup"]

    def test_base_exceptions_are_not_recovered(self) -> None:
        task = Task.fail(KeyboardInterrupt()).recover(lambda exc: "nope")
        with pytest.raises(KeyboardInterrupt):
            task.run()


class TestCollections:
    def test_sequence_preserves_order(self) -> None:
        log: list[int] = []
        tasks = [Task.delay(lambda i=i: log.append(i) or i * i) for i in range(4)]
        combined = Task.sequence(tasks)
        assert log == []
        assert combined.run() == [0, 1, 4, 9]
        assert log == [0, 1, 2, 3]

    def test_sequence_long_list(self) -> None:
        assert Task.sequence(Task.pure(i) for i in range(20_000)).run() == list(range(20_000))

    def test_sequence_empty(self) -> None:
        assert Task.sequence([]).run() == []

    def test_traverse(self) -> None:
        assert Task.traverse(["a", "bb"], lambda s: Task.pure(len(s))).run() == [1, 2]

    def test_traverse_stops_at_first_failure(self) -> None:
        seen: list[int] = []

        def check(n: int) -> Task[int]:
            def work() -> int:
                seen.append(n)
                if n == 2:
                    raise ValueError(n)
                return n

            return Task.delay(work)

        with pytest.raises(ValueError):
            Task.traverse([1, 2, 3], check).run()
        assert seen == [1, 2]


class TestEngines:
    async def test_run_async(self) -> None:
        counter = Counter()
        task = Task.delay(counter.bump)
        assert await task.run_async() == 1
        assert await task.run_async() == 2

    async def test_run_async_propagates_errors(self) -> None:
        with pytest.raises(ValueError):
            await Task.fail(ValueError("x")).run_async()

    def test_run_in_executor(self) -> None:
        with ThreadPoolExecutor(max_workers=2) as pool:
            future = Task.delay(sum, [1, 2, 3]).run_in(pool)
            assert future.result(timeout=5) == 6

    def test_run_in_executor_failure(self) -> None:
        with ThreadPoolExecutor(max_workers=1) as pool:
            future = Task.fail(RuntimeError("x")).run_in(pool)
            with pytest.raises(RuntimeError):
                future.result(timeout=5)
