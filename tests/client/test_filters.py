"""Tests for the client-side filter predicate."""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from client.filters import matches, normalize_filter
from models.user import User
from schemas.bookmark import BookmarkCreate, BookmarkResponse
from services.bookmark_service import create_bookmark, search_bookmarks
from tests.client.conftest import make_bookmark


def test__matches__no_filters_pass() -> None:
    """Absent and empty filters accept every record."""
    record = make_bookmark(1)
    assert matches(record)
    assert matches(record, query="", tag="")


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ("react", True),       # title, different case
        ("EXAMPLE.ORG", True),  # url
        ("hooks", True),       # description
        ("vue", False),
    ],
)
def test__matches__query_is_case_insensitive_substring(query: str, expected: bool) -> None:
    """The query matches title, url or description, ignoring case."""
    record = make_bookmark(
        1, url="https://example.org/docs", title="Learn React", description="About Hooks",
    )
    assert matches(record, query=query) is expected


def test__matches__missing_description_is_not_a_match() -> None:
    """A record without a description only matches through title or url."""
    record = make_bookmark(1, url="https://a.com", title="A", description=None)
    assert not matches(record, query="none")


def test__matches__tag_requires_exact_membership() -> None:
    """Tags match exactly; prefixes and other cases don't count."""
    record = make_bookmark(1, tags=["react", "testing"])
    assert matches(record, tag="react")
    assert not matches(record, tag="reac")
    assert not matches(record, tag="React")


def test__matches__query_and_tag_compose() -> None:
    """Both filters must pass."""
    record = make_bookmark(1, title="Testing library", tags=["react"])
    assert matches(record, query="testing", tag="react")
    assert not matches(record, query="testing", tag="vue")
    assert not matches(record, query="cypress", tag="react")


def test__matches__wildcards_are_literal() -> None:
    """% and _ are ordinary characters, as on the server."""
    assert not matches(make_bookmark(1, title="1000 pure"), query="100%")
    assert matches(make_bookmark(2, title="100% pure"), query="100%")


def test__normalize_filter() -> None:
    """Empty values become None."""
    assert normalize_filter("", "") == (None, None)
    assert normalize_filter("q", "t") == ("q", "t")


async def test__matches__agrees_with_server_search(db_session: AsyncSession) -> None:
    """For every filter pair, the predicate selects what the server search returns."""
    user = User(auth0_id="cross-check", email="cc@example.com")
    db_session.add(user)
    await db_session.flush()

    inputs = [
        BookmarkCreate(url="https://react.dev", title="React", tags=["react", "docs"]),
        BookmarkCreate(
            url="https://testing-library.com", description="Testing React components",
            tags=["react", "testing"],
        ),
        BookmarkCreate(url="https://vuejs.org", title="Vue", tags=["vue"]),
        BookmarkCreate(url="https://example.com/sale", title="100% off_today"),
        BookmarkCreate(url="https://a.com", title="No tags, no description"),
        BookmarkCreate(url="https://cafe.example.de", title="Über Café"),
    ]
    records = [
        BookmarkResponse.model_validate(await create_bookmark(db_session, user.id, data))
        for data in inputs
    ]

    filter_pairs = [
        (None, None), ("react", None), ("TESTING", None), (None, "react"),
        ("testing", "react"), ("vue", "react"), ("100%", None), ("_", None),
        (None, "missing"), ("description", None), ("über", None), ("CAFÉ", None),
    ]
    for query, tag in filter_pairs:
        server = await search_bookmarks(db_session, user.id, query=query, tag=tag)
        expected = {r.id for r in records if matches(r, query, tag)}
        assert {b.id for b in server} == expected, (query, tag)
