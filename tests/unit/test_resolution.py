import random

import pytest

from blobopen.core.errors import ValidationError
from blobopen.core.resolution import join_blob_name, resolve
from blobopen.domain.models.blob import ResolutionQuery
from blobopen.domain.models.resolution import Many, NotFound, Single

from fakes import make_blob


def test_open_latest_selects_newest_blob() -> None:
    listing = [
        make_blob("pfx/t2.csv", minutes=2),
        make_blob("pfx/t3.csv", minutes=3),
        make_blob("pfx/t1.csv", minutes=1),
    ]
    result = resolve(listing, ResolutionQuery(prefix="pfx"))
    assert result == Single(listing[1])


def test_open_latest_breaks_ties_by_greatest_name() -> None:
    listing = [make_blob("b", minutes=5), make_blob("a", minutes=5), make_blob("0", minutes=1)]
    result = resolve(listing, ResolutionQuery(prefix=""))
    assert isinstance(result, Single)
    assert result.blob.name == "b"


def test_resolution_ignores_listing_order() -> None:
    listing = [make_blob(f"logs/{i:02d}.txt", minutes=i % 4) for i in range(12)]
    query = ResolutionQuery(prefix="logs/")
    expected = resolve(listing, query)
    assert isinstance(expected, Single)
    assert expected.blob.name == "logs/11.txt"

    rng = random.Random(7)
    for _ in range(10):
        shuffled = listing[:]
        rng.shuffle(shuffled)
        assert resolve(shuffled, query) == expected
        assert resolve(shuffled, ResolutionQuery(prefix="logs/", list_mode=True)) == resolve(
            listing, ResolutionQuery(prefix="logs/", list_mode=True)
        )


def test_exact_name_is_joined_to_prefix() -> None:
    listing = [make_blob("pfx/a.txt", minutes=9), make_blob("pfx/b.txt", minutes=1)]

    found = resolve(listing, ResolutionQuery(prefix="pfx", exact_name="b.txt"))
    assert found == Single(listing[1])

    missing = resolve(listing, ResolutionQuery(prefix="pfx", exact_name="c.txt"))
    assert isinstance(missing, NotFound)
    assert missing.query.exact_name == "c.txt"


def test_list_mode_sorts_by_name() -> None:
    listing = [make_blob("z"), make_blob("a", minutes=4), make_blob("m", minutes=2)]
    result = resolve(listing, ResolutionQuery(prefix="", list_mode=True))
    assert isinstance(result, Many)
    assert [blob.name for blob in result.blobs] == ["a", "m", "z"]


def test_empty_listing_is_not_found_in_every_mode() -> None:
    for query in (
        ResolutionQuery(prefix="x"),
        ResolutionQuery(prefix="x", list_mode=True),
        ResolutionQuery(prefix="x", exact_name="y"),
    ):
        assert resolve([], query) == NotFound(query)


def test_resolve_accepts_a_lazy_listing() -> None:
    listing = (make_blob(name, minutes=i) for i, name in enumerate(["a", "b", "c"]))
    result = resolve(listing, ResolutionQuery(prefix=""))
    assert isinstance(result, Single)
    assert result.blob.name == "c"


@pytest.mark.parametrize(
    ("prefix", "name", "expected"),
    [
        ("pfx", "a.txt", "pfx/a.txt"),
        ("pfx/", "a.txt", "pfx/a.txt"),
        ("pfx", "/a.txt", "pfx/a.txt"),
        ("", "a.txt", "a.txt"),
        ("deep/er/", "sub/a.txt", "deep/er/sub/a.txt"),
    ],
)
def test_join_blob_name(prefix: str, name: str, expected: str) -> None:
    assert join_blob_name(prefix, name) == expected


def test_query_rejects_exact_name_in_list_mode() -> None:
    with pytest.raises(ValidationError):
        ResolutionQuery(prefix="pfx", exact_name="a.txt", list_mode=True)
    with pytest.raises(ValidationError):
        ResolutionQuery(prefix="pfx", exact_name="/")
