from budget_tracker import view
from budget_tracker.view import ViewFilters, ViewState


def _records(n):
    return [
        {
            "id": str(i),
            "date": f"2024-{(i % 12) + 1:02d}-{(i % 28) + 1:02d}",
            "type": "expense" if i % 3 else "income",
            "category": ["Food", "Rent", "Salary", "Travel"][i % 4],
            "amount": -(i + 1) if i % 3 else i + 1,
            "notes": f"note {i}",
            "description": f"note {i}",
            "recurring": i % 5 == 0,
        }
        for i in range(n)
    ]


def test_normalize_uses_stored_type_and_magnitude():
    rows = view.normalize([
        {"id": 1, "date": "2024-01-01", "type": "income", "category": "", "amount": 5, "description": "from desc"},
        {"id": 2, "date": "2024-01-02", "amount": -7},
    ])
    assert rows[0] == {
        "id": 1, "date": "2024-01-01", "type": "income", "category": "Other",
        "amount": 5.0, "notes": "from desc", "recurring": False,
    }
    assert rows[1]["type"] == "expense"
    assert rows[1]["amount"] == 7.0


def test_normalize_is_idempotent():
    once = view.normalize(_records(10))
    assert view.normalize(once) == once


def test_filters():
    rows = view.normalize([
        {"id": "a", "date": "2024-01-10", "type": "expense", "category": "Food", "amount": -20, "notes": "Pizza night"},
        {"id": "b", "date": "2024-02-01", "type": "expense", "category": "Rent", "amount": -900, "notes": ""},
        {"id": "c", "date": "2024-02-15", "type": "income", "category": "Salary", "amount": 3000, "notes": "Feb pay"},
        {"id": "d", "date": "someday", "type": "expense", "category": "Food", "amount": -5, "notes": ""},
    ])
    ids = lambda out: [r["id"] for r in out]

    assert ids(view.apply_filters(rows, ViewFilters(q="  PIZZA "))) == ["a"]
    assert ids(view.apply_filters(rows, ViewFilters(q="food"))) == ["a", "d"]
    assert ids(view.apply_filters(rows, ViewFilters(type="income"))) == ["c"]
    assert ids(view.apply_filters(rows, ViewFilters(category="Food"))) == ["a", "d"]
    assert ids(view.apply_filters(rows, ViewFilters(category="food"))) == []
    assert ids(view.apply_filters(rows, ViewFilters(date_from="2024-02-01", date_to="2024-02-15"))) == ["b", "c"]
    assert ids(view.apply_filters(rows, ViewFilters(date_to="2024-01-31"))) == ["a"]
    assert ids(view.apply_filters(rows, ViewFilters())) == ["a", "b", "c", "d"]


def test_filtering_is_idempotent():
    rows = view.normalize(_records(40))
    for filters in (ViewFilters(q="note 1"), ViewFilters(type="expense", category="Rent"),
                    ViewFilters(date_from="2024-03-01", date_to="2024-08-31")):
        once = view.apply_filters(rows, filters)
        assert view.apply_filters(once, filters) == once


def test_sort_rows():
    rows = view.normalize([
        {"id": "a", "date": "2024-03-01", "category": "rent", "amount": -900},
        {"id": "b", "date": "2024-01-15", "category": "Food", "amount": 20},
        {"id": "c", "date": "bad", "category": "Travel", "amount": -150},
        {"id": "d", "date": "2024-02-01", "category": "Food", "amount": 5},
    ])
    ids = lambda out: [r["id"] for r in out]
    assert ids(view.sort_rows(rows, "amount", "asc")) == ["d", "b", "c", "a"]
    assert ids(view.sort_rows(rows, "amount", "desc")) == ["a", "c", "b", "d"]
    assert ids(view.sort_rows(rows, "date", "asc")) == ["b", "d", "a", "c"]
    assert ids(view.sort_rows(rows, "date", "desc")) == ["a", "d", "b", "c"]
    assert ids(view.sort_rows(rows, "category", "asc")) == ["b", "d", "c", "a"]


def test_paginate_clamps_and_covers_everything():
    rows = view.normalize(_records(53))
    page = view.paginate(rows, 99, 25)
    assert (page.page, page.pages, page.total, len(page.rows)) == (3, 3, 53, 3)

    assert view.paginate(rows, -4, 25).page == 1
    assert view.paginate([], 3, 25) == view.Page(rows=[], total=0, pages=1, page=1)

    for size in (1, 7, 25, 53, 100):
        seen = []
        pages = view.paginate(rows, 1, size).pages
        for n in range(1, pages + 1):
            chunk = view.paginate(rows, n, size).rows
            assert len(chunk) <= size
            seen.extend(chunk)
        assert seen == rows


def test_render_writes_back_clamped_page():
    state = ViewState(transactions=tuple(_records(30)), page=5, page_size=10)
    state, page = view.render(state)
    assert state.page == 3
    assert page.page == 3
    assert len(page.rows) == 10
    # default sort is newest first
    dates = [r["date"] for r in page.rows]
    assert dates == sorted(dates, reverse=True)


def test_filter_changes_reset_page():
    state = ViewState(transactions=tuple(_records(60)), page=3)
    assert view.set_filters(state, q="note").page == 1
    assert view.clear_filters(view.set_filters(state, type="income")).filters == ViewFilters()
    assert view.set_page_size(state, 10).page == 1


def test_toggle_sort():
    state = ViewState()
    state = view.toggle_sort(state, "date")
    assert (state.sort_key, state.sort_dir) == ("date", "asc")
    state = view.toggle_sort(state, "date")
    assert state.sort_dir == "desc"
    state = view.toggle_sort(state, "amount")
    assert (state.sort_key, state.sort_dir) == ("amount", "asc")


def test_next_and_prev_page_are_clamped():
    state = ViewState(transactions=tuple(_records(30)), page_size=25)
    state = view.next_page(view.next_page(state))
    assert state.page == 2
    state = view.prev_page(view.prev_page(view.prev_page(state)))
    assert state.page == 1


def test_edit_tracking():
    state = ViewState(transactions=tuple(_records(3)))
    state = view.start_edit(state, 1)
    assert state.edit_id == "1"
    assert view.editing_row(state)["notes"] == "note 1"
    assert view.finish_edit(state).edit_id is None


def test_refresh_fetches_whole_collection():
    class FakeClient:
        def list_transactions(self):
            return _records(4)

    state = view.refresh(ViewState(), FakeClient())
    assert len(state.transactions) == 4


def test_dashboard_aggregates():
    rows = view.normalize([
        {"id": "1", "date": "2024-05-01", "type": "expense", "category": "Food", "amount": -200},
        {"id": "2", "date": "2024-05-20", "type": "expense", "category": "Rent", "amount": -800},
        {"id": "3", "date": "2024-05-25", "type": "income", "category": "Salary", "amount": 3000},
        {"id": "4", "date": "2024-06-02", "type": "expense", "category": "Food", "amount": -100},
    ])
    assert view.monthly_expense(rows, "2024-05") == 1000
    assert view.goal_progress(1000, 4000) == 25.0
    assert view.goal_progress(5000, 4000) == 100.0
    assert view.goal_progress(1000, 0) == 0.0
    assert view.expenses_by_category(rows) == {"Food": 300.0, "Rent": 800.0}
    assert view.net_by_month(rows) == {"2024-05": 2000.0, "2024-06": -100.0}
