from src.upastithi.upastithi.common.pagination import fetch_all, paginate


def test_paginate_slices_and_counts():
    p = paginate(list(range(23)), page=3, per_page=10)
    assert p.items == [20, 21, 22]
    assert (p.page, p.total_items, p.total_pages) == (3, 23, 3)


def test_paginate_clamps_out_of_range_pages():
    assert paginate(list(range(5)), page=9, per_page=2).page == 3
    assert paginate(list(range(5)), page=-1, per_page=2).items == [0, 1]


def test_paginate_empty():
    p = paginate([], page=2)
    assert p.items == []
    assert (p.page, p.total_pages) == (1, 0)


def test_fetch_all_reads_past_the_first_page():
    rows = list(range(7))
    calls = []

    def fetch(limit, offset):
        calls.append((limit, offset))
        return rows[offset : offset + limit]

    assert fetch_all(fetch, page_size=3) == rows
    assert calls == [(3, 0), (3, 3), (3, 6)]


def test_fetch_all_exact_multiple_needs_one_empty_page():
    calls = []

    def fetch(limit, offset):
        calls.append(offset)
        return list(range(4))[offset : offset + limit]

    assert fetch_all(fetch, page_size=2) == [0, 1, 2, 3]
    assert calls == [0, 2, 4]
