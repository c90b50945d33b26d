import json
from datetime import date

from invoice_workbench.models.common import (
    FilterSelection,
    PaymentFilter,
    Predicate,
    SortDirection,
    StatusFilter,
)
from invoice_workbench.models.invoice import Customer, Product
from invoice_workbench.query import (
    ListQueryController,
    SortState,
    build_query,
    predicates_equal,
)


def _full_selection():
    return FilterSelection(
        date_range=(date(2024, 1, 1), date(2024, 1, 31)),
        due_date_range=(date(2024, 2, 1), date(2024, 2, 29)),
        status=StatusFilter.FINALIZED,
        payment=PaymentFilter.UNPAID,
        customer=Customer(id=7, first_name="Ada", last_name="Lovelace"),
        product=Product(id=42, label="Widget"),
    )


def test_default_query():
    query = build_query()
    assert query.predicates == ()
    assert query.as_params() == {"sort": "-date", "page": 1, "page_size": 10}


def test_status_filter_alone_gives_one_predicate():
    query = build_query(FilterSelection(status=StatusFilter.FINALIZED))

    assert query.as_params() == {
        "filter": '[{"field":"finalized","operator":"eq","value":"true"}]',
        "sort": "-date",
        "page": 1,
        "page_size": 10,
    }


def test_predicates_follow_fixed_order():
    query = build_query(_full_selection())

    assert [(p.field, p.operator, p.value) for p in query.predicates] == [
        ("date", "gteq", "2024-01-01"),
        ("date", "lteq", "2024-01-31"),
        ("deadline", "gteq", "2024-02-01"),
        ("deadline", "lteq", "2024-02-29"),
        ("finalized", "eq", "true"),
        ("paid", "eq", "false"),
        ("customer_id", "eq", "7"),
        ("invoice_lines.product_id", "eq", "42"),
    ]


def test_identical_inputs_give_identical_params():
    first = build_query(_full_selection(), "total", "asc", 3).as_params()
    second = build_query(_full_selection(), "total", "asc", 3).as_params()

    assert first == second
    assert list(first) == ["filter", "sort", "page", "page_size"]
    assert first["filter"] == second["filter"]
    assert json.loads(first["filter"])[0] == {"field": "date", "operator": "gteq", "value": "2024-01-01"}


def test_open_ended_range_emits_single_bound():
    selection = FilterSelection(date_range=(None, date(2024, 6, 30)))
    assert build_query(selection).predicates == (Predicate("date", "lteq", "2024-06-30"),)


def test_sort_token_maps_status_column():
    assert build_query(sort_field="status", sort_direction="asc").sort == "+finalized"
    assert build_query(sort_field="total").sort == "-total"


def test_page_is_clamped():
    assert build_query(page=0).page == 1


def test_sort_toggle():
    sort = SortState()
    sort.toggle("date")
    assert sort.token == "+date"
    sort.toggle("date")
    assert sort.token == "-date"
    sort.toggle("date")
    sort.toggle("total")
    assert (sort.field, sort.direction) == ("total", SortDirection.DESC)


def test_predicates_equal_ignores_order():
    a = Predicate("paid", "eq", "true")
    b = Predicate("finalized", "eq", "false")
    assert predicates_equal((a, b), (b, a))
    assert not predicates_equal((a,), (a, b))


def test_apply_and_clear_reset_page():
    controller = ListQueryController()
    controller.set_page(4)
    controller.set_filter(status=StatusFilter.DRAFT)
    assert controller.has_changed_filters

    descriptor = controller.apply_filters()
    assert descriptor.page == 1
    assert controller.has_active_filters
    assert not controller.has_changed_filters

    controller.set_page(2)
    assert controller.clear_filters().page == 1
    assert not controller.has_active_filters


def test_pending_filters_do_not_affect_descriptor():
    controller = ListQueryController()
    controller.set_filter(payment=PaymentFilter.PAID)
    assert controller.descriptor().predicates == ()


def test_filter_summary():
    controller = ListQueryController()
    controller.set_filter(
        status=StatusFilter.FINALIZED,
        payment=PaymentFilter.PAID,
        customer=Customer(id=1, first_name="Ada", last_name="Lovelace"),
        date_range=(date(2024, 1, 1), None),
    )
    controller.apply_filters()

    assert controller.filter_summary() == (
        "Status: finalized, Payment: paid, Customer: Ada Lovelace, Date from 2024-01-01"
    )


def test_cache_key_is_stable():
    assert build_query(_full_selection()).cache_key() == build_query(_full_selection()).cache_key()
    assert build_query().cache_key() != build_query(page=2).cache_key()
