"""Hello World — the simplest perch app.

Demonstrates the route DSL, typed path binders, handlers that return
plain values or tasks, Response chaining, and a custom fallback.

Run:
    python app.py
"""

from perch import GET, App, IntVar, Request, Response, Root, Task, Var

app = App()


@app.route(GET >> Root)
def index(request: Request):
    return "Hello, World!"


@app.route(GET >> Root / "greet" / Var("name"))
def greet(request: Request, name: str):
    return f"Hello, {name}!"


@app.route(GET, "/square/{n:int}")
def square(request: Request, n: int):
    # The multiplication happens on a worker thread when the task runs
    return Task.delay(lambda: n * n).map(lambda result: {"n": n, "square": result})


@app.route(GET >> Root / "add" / IntVar("a") / IntVar("b"))
def add(request: Request, a: int, b: int):
    return str(a + b)


@app.route(GET >> Root / "custom")
def custom(request: Request):
    return Response("Created").with_status(201).with_header("X-Custom", "perch")


@app.fallback
def not_found(request: Request):
    return Response.not_found(f"Nothing at {request.path}")


if __name__ == "__main__":
    app.run()
