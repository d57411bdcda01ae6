import os
import sys

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from notion2memos.extractors.tag_resolver import TagResolver
from notion2memos.models.notion import Database, Page
from notion2memos.utils.errors import TransportError
from notion_fakes import database_parent, make_database, make_page, page_parent


class FakeNotion:
    def __init__(self, pages=None, databases=None, failing=()):
        self.pages = {k: Page.model_validate(v) for k, v in (pages or {}).items()}
        self.databases = {k: Database.model_validate(v) for k, v in (databases or {}).items()}
        self.failing = set(failing)
        self.page_calls = []
        self.database_calls = []

    def retrieve_page(self, page_id):
        self.page_calls.append(page_id)
        if page_id in self.failing:
            raise TransportError(404, "object_not_found")
        return self.pages[page_id]

    def retrieve_database(self, database_id):
        self.database_calls.append(database_id)
        if database_id in self.failing:
            raise TransportError(500, "boom")
        return self.databases[database_id]


def page(page_id, title, parent=None):
    return Page.model_validate(make_page(page_id, title, parent=parent))


def test_root_page_has_no_tags():
    resolver = TagResolver(FakeNotion())
    assert resolver.resolve_tags(page("p", "Loose note")) == []


def test_ancestor_titles_outermost_first():
    notion = FakeNotion(pages={
        "work": make_page("work", "Work"),
        "proj": make_page("proj", "Projects", parent=page_parent("work")),
    })
    resolver = TagResolver(notion)
    tags = resolver.resolve_tags(page("leaf", "Standup", parent=page_parent("proj")))
    assert tags == ["Work", "Projects"]


def test_database_title_comes_first():
    notion = FakeNotion(databases={"db": make_database("db", "Reading List")})
    resolver = TagResolver(notion)
    assert resolver.resolve_tags(page("p", "Dune", parent=database_parent("db"))) == ["Reading List"]


def test_shared_parents_are_fetched_once():
    notion = FakeNotion(pages={"work": make_page("work", "Work")})
    resolver = TagResolver(notion)
    resolver.resolve_tags(page("a", "A", parent=page_parent("work")))
    resolver.resolve_tags(page("b", "B", parent=page_parent("work")))
    assert notion.page_calls == ["work"]
    assert "work" in resolver.pages


def test_cycle_stops_after_max_hops():
    notion = FakeNotion(pages={
        "x": make_page("x", "X", parent=page_parent("y")),
        "y": make_page("y", "Y", parent=page_parent("x")),
    })
    resolver = TagResolver(notion, max_hops=4)
    tags = resolver.resolve_tags(page("leaf", "Leaf", parent=page_parent("x")))
    assert len(tags) == 4


def test_default_walk_is_bounded_to_ten_hops():
    pages = {}
    for i in range(15):
        parent = page_parent(f"n{i + 1}") if i < 14 else None
        pages[f"n{i}"] = make_page(f"n{i}", f"Level{i}", parent=parent)
    resolver = TagResolver(FakeNotion(pages=pages))
    tags = resolver.resolve_tags(page("leaf", "Leaf", parent=page_parent("n0")))
    assert len(tags) == 10
    assert tags[-1] == "Level0"


def test_failed_parent_lookup_keeps_partial_tags_and_records_warning():
    notion = FakeNotion(
        pages={"proj": make_page("proj", "Projects", parent=page_parent("gone"))},
        failing={"gone"},
    )
    resolver = TagResolver(notion)
    tags = resolver.resolve_tags(page("leaf", "Standup", parent=page_parent("proj")))

    assert tags == ["Projects"]
    assert len(resolver.warnings) == 1
    warning = resolver.warnings[0]
    assert warning.page_id == "leaf"
    assert warning.partial_tags == ["Projects"]


def test_failed_database_lookup_still_walks_nothing_else():
    notion = FakeNotion(failing={"db"})
    resolver = TagResolver(notion)
    assert resolver.resolve_tags(page("p", "Dune", parent=database_parent("db"))) == []
    assert len(resolver.warnings) == 1


def test_failed_lookup_is_not_cached():
    notion = FakeNotion(failing={"gone"})
    resolver = TagResolver(notion)
    resolver.resolve_tags(page("a", "A", parent=page_parent("gone")))
    resolver.resolve_tags(page("b", "B", parent=page_parent("gone")))
    assert notion.page_calls == ["gone", "gone"]
    assert resolver.pages == {}


def test_data_source_parent_uses_owning_database_title():
    notion = FakeNotion(databases={"db1": make_database("db1", "Reading List")})
    resolver = TagResolver(notion)
    parent = {"type": "data_source_id", "data_source_id": "ds1", "database_id": "db1"}
    assert resolver.resolve_tags(page("p", "Dune", parent=parent)) == ["Reading List"]
    assert notion.database_calls == ["db1"]
