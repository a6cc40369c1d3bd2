"""Unit tests for page construction shared by both backends."""
from datetime import UTC, datetime

from tenant_rbac.core.schemas import Connection, PaginationInput, Property
from tenant_rbac.repositories.common import build_connection


def _property(name: str) -> Property:
    return Property(name=name, value=name, created_at=datetime(2025, 1, 1, tzinfo=UTC))


class TestBuildConnection:

    def test_middle_page(self):
        page = build_connection(
            [_property("b"), _property("c")], 5, PaginationInput(limit=2, offset=1), lambda p: p.name
        )
        assert type(page) is Connection
        assert [p.name for p in page.nodes] == ["b", "c"]
        assert page.total_count == 5
        assert page.page_info.has_next_page and page.page_info.has_previous_page
        assert (page.page_info.start_cursor, page.page_info.end_cursor) == ("b", "c")

    def test_empty_page_without_pagination(self):
        page = build_connection([], 0, None, lambda p: p.name)
        assert page.nodes == []
        assert not page.page_info.has_next_page and not page.page_info.has_previous_page
        assert page.page_info.start_cursor is None and page.page_info.end_cursor is None
