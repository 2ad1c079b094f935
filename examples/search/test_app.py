"""Tests for the search example."""

import json

from perch.testing import TestClient


class TestSearchApp:
    async def test_missing_term_falls_through(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/search")
            assert response.status == 400
            assert "?q=" in response.text

    async def test_term_matches_titles(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/search", query={"q": "design"})
            data = json.loads(response.text)
            assert data["total"] == 2
            assert data["titles"] == [
                "Designing Data-Intensive Applications",
                "The Design of Everyday Things",
            ]

    async def test_paging_and_next_link(self, example_app) -> None:
        async with TestClient(example_app) as client:
            data = json.loads((await client.get("/search?q=")).text)
            assert data["total"] == 7
            assert len(data["titles"]) == 3
            assert data["next"] == "/search?q=&page=2&sort=title"

            data = json.loads((await client.get(data["next"])).text)
            assert data["page"] == 2
            assert data["titles"][0] == "Site Reliability Engineering"

    async def test_bad_page_uses_default(self, example_app) -> None:
        async with TestClient(example_app) as client:
            data = json.loads((await client.get("/search?q=&page=two")).text)
            assert data["page"] == 1

    async def test_repeated_genre_filter(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/search", query={"q": "", "genre": ["design", "cs-theory"]})
            data = json.loads(response.text)
            assert data["total"] == 2

    async def test_enum_sort_and_flag(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/search?q=&sort=rating&desc")
            data = json.loads(response.text)
            assert data["titles"][0] == "Designing Data-Intensive Applications"

    async def test_unknown_sort_uses_default(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/search?q=&sort=price")
            assert json.loads(response.text)["titles"][0] == "Clean Code"

    async def test_custom_codec(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/search?q=&years=2015-2018")
            data = json.loads(response.text)
            assert data["total"] == 2

    async def test_single_year(self, example_app) -> None:
        async with TestClient(example_app) as client:
            data = json.loads((await client.get("/search?q=&years=1968")).text)
            assert data["titles"] == ["The Art of Computer Programming"]
