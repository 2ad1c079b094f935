"""Search — book search driven entirely by query matchers.

Demonstrates:
- ``QueryParam`` for a required term (missing term -> next route)
- ``OptionalQueryParam`` with defaults for paging
- ``MultiQueryParam`` for repeated ``?genre=`` filters
- ``FlagQueryParam`` for a bare ``?desc`` switch
- An ``Enum`` decoded straight from the query string
- A codec registered for a custom type
- Building links with ``encode_query``

Run:
    python app.py
"""

from dataclasses import dataclass
from enum import Enum

from perch import (
    GET,
    App,
    FlagQueryParam,
    MultiQueryParam,
    OptionalQueryParam,
    QueryCodecs,
    QueryParam,
    Request,
    Response,
    Root,
    Task,
    encode_query,
)


class SortKey(Enum):
    TITLE = "title"
    YEAR = "year"
    RATING = "rating"


@dataclass(frozen=True)
class YearRange:
    start: int
    end: int

    @classmethod
    def parse(cls, text: str) -> "YearRange":
        start, _, end = text.partition("-")
        return cls(int(start), int(end or start))


codecs = QueryCodecs.with_defaults()
codecs.register(YearRange, key="years", decode=YearRange.parse, encode=lambda r: f"{r.start}-{r.end}")
codecs.register_key(SortKey, "sort")

BOOKS = [
    {"title": "The Pragmatic Programmer", "genre": "programming", "year": 2019, "rating": 4.7},
    {"title": "Clean Code", "genre": "programming", "year": 2008, "rating": 4.4},
    {"title": "Designing Data-Intensive Applications", "genre": "systems", "year": 2017, "rating": 4.8},
    {"title": "The Art of Computer Programming", "genre": "cs-theory", "year": 1968, "rating": 4.6},
    {"title": "Fluent Python", "genre": "programming", "year": 2022, "rating": 4.7},
    {"title": "Site Reliability Engineering", "genre": "systems", "year": 2016, "rating": 4.3},
    {"title": "The Design of Everyday Things", "genre": "design", "year": 2013, "rating": 4.3},
]

PAGE_SIZE = 3

app = App()


def find_books(
    term: str,
    genres: list[str],
    years: YearRange | None,
    sort: SortKey,
    desc: bool,
) -> list[dict]:
    results = [book for book in BOOKS if term.lower() in book["title"].lower()]
    if genres:
        results = [book for book in results if book["genre"] in genres]
    if years is not None:
        results = [book for book in results if years.start <= book["year"] <= years.end]
    return sorted(results, key=lambda book: book[sort.value], reverse=desc)


@app.route(
    GET >> Root / "search"
    & QueryParam("q", name="term")
    & OptionalQueryParam("page", int, default=1)
    & MultiQueryParam("genre", name="genres")
    & OptionalQueryParam.for_type(YearRange, codecs=codecs)
    & OptionalQueryParam.for_type(SortKey, codecs=codecs, default=SortKey.TITLE)
    & FlagQueryParam("desc")
)
def search(request: Request, term, page, genres, years, sort, desc):
    def render(results: list[dict]) -> Response:
        start = (max(page, 1) - 1) * PAGE_SIZE
        body = {
            "term": term,
            "total": len(results),
            "page": page,
            "titles": [book["title"] for book in results[start : start + PAGE_SIZE]],
        }
        if start + PAGE_SIZE < len(results):
            next_query = {"q": term, "page": page + 1, "genre": genres, "sort": sort}
            body["next"] = "/search?" + encode_query(next_query, codecs)
        return Response.json(body)

    return Task.delay(find_books, term, genres, years, sort, desc).map(render)


@app.route(GET >> Root / "search")
def search_form(request: Request):
    return Response.bad_request("Add ?q=<term> to search")


if __name__ == "__main__":
    app.run()
