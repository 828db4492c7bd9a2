# tests/test_route_resolver.py
from dataclasses import replace
from datetime import timedelta

from conftest import make_book
from lexquest.models import BookPriority, BookStatus
from lexquest.route import RouteCache, cache_key, resolve, route_progress


def ids(books):
    return [b.id for b in books]


def test_empty_input():
    result = resolve([])
    assert result.order == []
    assert result.edges == []
    assert result.satisfied == {}


def test_parents_come_before_children():
    books = [
        make_book("c", previous_book_id="b", created_offset=0),
        make_book("b", previous_book_id="a", created_offset=1),
        make_book("a", created_offset=2),
    ]
    result = resolve(books)
    assert ids(result.order) == ["a", "b", "c"]
    assert result.edges == [("a", "b"), ("b", "c")]
    assert ids(result.routes[0]) == ["a", "b", "c"]


def test_main_line_before_branch_then_creation_order():
    books = [
        make_book("branch", priority=BookPriority.BRANCH, created_offset=0),
        make_book("late", created_offset=5),
        make_book("early", created_offset=1),
    ]
    assert ids(resolve(books).order) == ["early", "late", "branch"]


def test_satisfied_only_when_parent_completed():
    books = [
        make_book("done", status=BookStatus.COMPLETED, created_offset=0),
        make_book("open", created_offset=1),
        make_book("after_done", previous_book_id="done", created_offset=2),
        make_book("after_open", previous_book_id="open", created_offset=3),
    ]
    satisfied = resolve(books).satisfied
    assert satisfied == {"done": True, "open": True, "after_done": True, "after_open": False}


def test_dangling_parent_becomes_root():
    books = [make_book("orphan", previous_book_id="deleted")]
    result = resolve(books)
    assert ids(result.order) == ["orphan"]
    assert result.satisfied["orphan"] is True
    assert result.dangling == ["orphan"]
    assert result.edges == []


def test_two_node_cycle_terminates_without_duplicates():
    books = [
        make_book("a", previous_book_id="b", created_offset=0),
        make_book("b", previous_book_id="a", created_offset=1),
    ]
    result = resolve(books)
    assert sorted(ids(result.order)) == ["a", "b"]
    assert len(result.order) == 2
    # The first book walked is the one re-encountered, so it becomes the root
    assert result.cycles == ["a"]
    assert result.edges == [("a", "b")]


def test_self_reference_and_longer_cycle():
    books = [
        make_book("self", previous_book_id="self", created_offset=0),
        make_book("x", previous_book_id="z", created_offset=1),
        make_book("y", previous_book_id="x", created_offset=2),
        make_book("z", previous_book_id="y", created_offset=3),
        make_book("tail", previous_book_id="y", created_offset=4),
    ]
    result = resolve(books)
    assert len(result.order) == len(books)
    assert len(set(ids(result.order))) == len(books)
    assert "self" in result.cycles
    position = {b.id: i for i, b in enumerate(result.order)}
    for parent, child in result.edges:
        assert position[parent] < position[child]


def test_duplicate_input_books_are_collapsed():
    book = make_book("a")
    assert ids(resolve([book, book]).order) == ["a"]


def test_routes_split_at_branches():
    books = [
        make_book("root", created_offset=0),
        make_book("main", previous_book_id="root", created_offset=1),
        make_book("side", previous_book_id="root", priority=BookPriority.BRANCH, created_offset=2),
    ]
    routes = [ids(r) for r in resolve(books).routes]
    assert routes == [["root", "main"], ["root", "side"]]


def test_route_progress():
    route = [
        make_book("a", total_unit=100, completed_unit=100),
        make_book("b", total_unit=200, completed_unit=50),
    ]
    progress = route_progress(route)
    assert progress.total_units == 300
    assert progress.completed_units == 150
    assert progress.percentage == 50
    assert route_progress([]).percentage == 0


def test_cache_hits_until_a_book_changes():
    cache = RouteCache()
    books = [make_book("a"), make_book("b", previous_book_id="a", created_offset=1)]
    first = cache.get(books)
    assert cache.get(list(reversed(books))) is first
    assert cache.hits == 1

    changed = [books[0], replace(books[1], updated_at=books[1].updated_at + timedelta(seconds=1))]
    assert cache.get(changed) is not first
    assert cache.misses == 2


def test_cache_key_tracks_status_and_parent():
    book = make_book("a")
    assert cache_key([book]) != cache_key([replace(book, status=BookStatus.COMPLETED)])
    assert cache_key([book]) != cache_key([replace(book, previous_book_id="x")])


def test_invalidate_forces_recompute():
    cache = RouteCache()
    books = [make_book("a")]
    first = cache.get(books)
    cache.invalidate()
    assert cache.get(books) is not first
