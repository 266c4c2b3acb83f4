"""
Unit Tests - Query Composition
"""
from datetime import date

from sqlalchemy import Date, Integer

from order_reports.reports.catalog import END_DATE_PREDICATE, START_DATE_PREDICATE
from order_reports.reports.composer import BoundValue, ComposedClause, QueryComposer, placeholder


class TestQueryComposer:
    """Tests for positional placeholder assignment"""

    def test_no_predicates(self):
        """Test an empty composer renders no WHERE clause"""
        clause = QueryComposer().compose()
        assert clause.where == ""
        assert clause.params == ()

    def test_absent_values_are_skipped(self):
        clause = (
            QueryComposer()
            .where(START_DATE_PREDICATE, None, Date())
            .where(END_DATE_PREDICATE, None, Date())
            .compose()
        )
        assert clause.where == ""

    def test_single_predicate(self):
        clause = QueryComposer().where("category_id = {}", 3, Integer()).compose()
        assert clause.where == "WHERE category_id = :p1"
        assert [bound.value for bound in clause.params] == [3]

    def test_two_predicates_joined_with_and(self):
        """Test placeholders follow list position"""
        clause = (
            QueryComposer()
            .where(START_DATE_PREDICATE, date(2026, 1, 1), Date())
            .where(END_DATE_PREDICATE, date(2026, 1, 31), Date())
            .compose()
        )
        assert clause.where == "WHERE sale_date >= :p1 AND sale_date <= :p2"
        assert [bound.value for bound in clause.params] == [date(2026, 1, 1), date(2026, 1, 31)]

    def test_omitted_filter_does_not_shift_placeholders(self):
        """Test an absent start date leaves the end date at :p1"""
        clause = (
            QueryComposer()
            .where(START_DATE_PREDICATE, None, Date())
            .where(END_DATE_PREDICATE, date(2026, 1, 31), Date())
            .compose()
        )
        assert clause.where == "WHERE sale_date <= :p1"
        assert len(clause.params) == 1

    def test_values_never_enter_query_text(self):
        hostile = "2026-01-01' OR '1'='1"
        clause = QueryComposer().where("status = {}", hostile).compose()
        assert hostile not in clause.where
        assert clause.params[0].value == hostile

    def test_zero_is_a_value(self):
        """Test falsy but present values still produce a predicate"""
        clause = QueryComposer().where("order_count = {}", 0, Integer()).compose()
        assert clause.where == "WHERE order_count = :p1"


class TestComposedClause:
    """Tests for trailing parameters and bind generation"""

    def test_extend_after_predicates(self):
        """Test limit/offset markers continue after the filter placeholders"""
        clause = QueryComposer().where("product_rank <= {}", 5, Integer()).compose()
        extended, markers = clause.extend(BoundValue(2, Integer()), BoundValue(2, Integer()))
        assert markers == [":p2", ":p3"]
        assert len(extended.params) == 3
        assert extended.where == clause.where

    def test_extend_empty_clause(self):
        _, markers = ComposedClause().extend(BoundValue(10), BoundValue(0))
        assert markers == [":p1", ":p2"]

    def test_extend_leaves_original_untouched(self):
        clause = ComposedClause()
        clause.extend(BoundValue(10))
        assert clause.params == ()

    def test_bindparams_are_named_by_position(self):
        clause = (
            QueryComposer()
            .where("a = {}", 1, Integer())
            .where("b = {}", 2, Integer())
            .compose()
        )
        binds = clause.bindparams()
        assert [b.key for b in binds] == ["p1", "p2"]
        assert [b.value for b in binds] == [1, 2]

    def test_placeholder(self):
        assert placeholder(4) == ":p4"
