"""Tests for the hello example."""

from perch.testing import TestClient


class TestHelloApp:
    """Verify every route in the hello example works through the ASGI pipeline."""

    async def test_index(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/")
            assert response.status == 200
            assert response.text == "Hello, World!"

    async def test_greet_with_path_binding(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/greet/alice")
            assert response.status == 200
            assert response.text == "Hello, alice!"

    async def test_greet_decodes_segment(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/greet/Ada%20Lovelace")
            assert response.text == "Hello, Ada Lovelace!"

    async def test_square_returns_json_from_task(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/square/12")
            assert response.status == 200
            assert "application/json" in response.content_type
            assert response.text == '{"n": 12, "square": 144}'

    async def test_non_integer_falls_through_to_fallback(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/square/twelve")
            assert response.status == 404
            assert response.text == "Nothing at /square/twelve"

    async def test_two_bindings(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/add/2/-5")
            assert response.text == "-3"

    async def test_custom_response_status_and_header(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/custom")
            assert response.status == 201
            assert response.text == "Created"
            assert ("x-custom", "perch") in response.headers

    async def test_wrong_method(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.post("/")
            assert response.status == 404
