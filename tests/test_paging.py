"""Tests for page_bounds(), fetch_page() and slice_page()."""

import pytest

from dmsgateway.errors import ErrorKind, GatewayError
from dmsgateway.paging import ALL, MAX_PAGE_SIZE, fetch_page, page_bounds, slice_page


class TestPageBounds:
    """Tests for page_bounds()."""

    def test_first_page(self):
        assert page_bounds(0, 10, 25) == (0, 10, 0, 10)

    def test_last_partial_page(self):
        assert page_bounds(2, 10, 25) == (2, 10, 20, 25)

    def test_page_past_end_is_empty(self):
        page, size, offset, limit = page_bounds(5, 10, 25)
        assert offset == limit

    def test_all_forces_page_zero(self):
        assert page_bounds(3, ALL, 25) == (0, 25, 0, 25)

    def test_size_clamped_to_total(self):
        assert page_bounds(0, 100, 25) == (0, 25, 0, 25)

    def test_size_capped(self):
        _, size, offset, limit = page_bounds(0, 5000, 1500)
        assert size == MAX_PAGE_SIZE
        assert limit - offset == MAX_PAGE_SIZE

    def test_zero_size(self):
        assert page_bounds(0, 0, 25) == (0, 0, 0, 0)

    def test_empty_table(self):
        assert page_bounds(0, ALL, 0) == (0, 0, 0, 0)

    @pytest.mark.parametrize("page, size", [(-1, 10), (0, -2)])
    def test_invalid_request(self, page, size):
        with pytest.raises(GatewayError) as exc_info:
            page_bounds(page, size, 25)
        assert exc_info.value.kind == ErrorKind.INVALID_MODEL


class TestFetchPage:
    """Tests for fetch_page()."""

    def test_fetches_only_page_rows(self):
        fetched = []

        def fetch(position):
            fetched.append(position)
            return position + 1

        result = fetch_page(1, 3, 8, fetch)
        assert fetched == [3, 4, 5]
        assert result.items == [4, 5, 6]
        assert result.page == 1
        assert result.page_size == 3
        assert result.total_count == 8

    @pytest.mark.parametrize("total", [0, 1, 7, 12])
    @pytest.mark.parametrize("size", [1, 3, 5])
    def test_pages_cover_table_once(self, total, size):
        """Walking every page visits each row exactly once."""
        seen = []
        page = 0
        while True:
            result = fetch_page(page, size, total, lambda i: i)
            if not result.items:
                break
            seen.extend(result.items)
            page += 1
        assert seen == list(range(total))

    def test_all(self):
        result = fetch_page(0, ALL, 4, lambda i: i)
        assert list(result) == [0, 1, 2, 3]
        assert len(result) == 4


class TestSlicePage:
    """Tests for slice_page()."""

    def test_total_is_item_count(self):
        result = slice_page(["a", "b", "c"], 1, 2)
        assert result.items == ["c"]
        assert result.total_count == 3

    def test_empty(self):
        result = slice_page([], 0, ALL)
        assert result.items == []
        assert result.total_count == 0
