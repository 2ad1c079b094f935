"""Streaming — lazy streams sent as chunked responses.

Demonstrates:
- Returning a ``Stream`` from a handler (sent with chunked encoding)
- ``Stream.unfold`` and ``Stream.eval_map`` producing chunks on demand
- ``Rest`` capturing a variable number of trailing segments
- ``StreamingResponse`` for a custom content type

Nothing in a stream runs until the response is being sent, and each
chunk is pulled on a worker thread.

Run:
    python app.py
"""

from perch import GET, App, IntVar, Request, Rest, Root, Stream, StreamingResponse, Task

app = App()


def fibonacci() -> Stream[int]:
    return Stream.unfold((0, 1), lambda state: (state[0], (state[1], state[0] + state[1])))


@app.route(GET >> Root / "fib" / IntVar("count"))
def fib(request: Request, count: int):
    return fibonacci().take(count).map(lambda n: f"{n}\n")


@app.route(GET >> Root / "csv" / IntVar("rows"))
def csv(request: Request, rows: int):
    header = Stream.emit("n,square\r\n")
    body = Stream.range(1, rows + 1).eval_map(lambda n: Task.delay(lambda: f"{n},{n * n}\r\n"))
    return StreamingResponse(header + body, content_type="text/csv").with_header(
        "Content-Disposition", 'attachment; filename="squares.csv"'
    )


@app.route(GET >> Root / "echo" / Rest("parts"))
def echo(request: Request, parts: tuple[str, ...]):
    return Stream.emits(parts).intersperse(" / ")


if __name__ == "__main__":
    app.run()
