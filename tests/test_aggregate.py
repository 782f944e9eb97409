# -------------------------------------
# Grouped aggregation tests
# -------------------------------------
"""
Tests for group_by, table_groups, summarize and ungroup.
"""
import pytest

from tidyshape.aggregate import (
    AGGREGATES,
    agg,
    is_grouped,
    table_group_by,
    table_groups,
    table_summarize,
    table_ungroup,
)
from tidyshape.errors import (
    EmptyGroup,
    TableError,
    TypeMismatch,
    UndefinedAggregate,
    UnknownColumn,
)
from tidyshape.table import table_column, table_new, table_to_dict


@pytest.fixture
def villages():
    return table_new({"village": ["A", "A", "B"], "no_membrs": [3, 5, 2]})


@pytest.fixture
def interviews():
    return table_new({
        "village": ["God", "Ruaca", "God", "Chirodzo", "Ruaca", "God"],
        "no_membrs": [3, 10, 7, 6, 8, None],
        "respondent_wall_type": ["muddaub", "burntbricks", "burntbricks", "muddaub", "cement", "muddaub"],
    })


# -------------------------------------
# Grouping state
# -------------------------------------

class TestGroupBy:
    """Tests for table_group_by, table_groups and table_ungroup."""

    def test_group_by_keeps_rows(self, interviews):
        grouped = table_group_by(interviews, "village")
        assert grouped["rows"] == interviews["rows"]
        assert grouped["groups"] == ["village"]
        assert is_grouped(grouped)
        assert not is_grouped(interviews)

    def test_groups_first_occurrence(self, interviews):
        groups = table_groups(table_group_by(interviews, "village"))
        assert groups == [
            (("God",), [0, 2, 5]),
            (("Ruaca",), [1, 4]),
            (("Chirodzo",), [3]),
        ]

    def test_groups_sorted(self, interviews):
        groups = table_groups(table_group_by(interviews, "village", sort=True))
        assert [key for key, _ in groups] == [("Chirodzo",), ("God",), ("Ruaca",)]

    def test_groups_sorted_missing_last(self):
        table = table_new({"k": [None, 2, 1]})
        groups = table_groups(table_group_by(table, "k", sort=True))
        assert [key for key, _ in groups] == [(1,), (2,), (None,)]

    def test_ungrouped_is_one_group(self, villages):
        assert table_groups(villages) == [((), [0, 1, 2])]

    def test_group_by_unknown_column(self, villages):
        with pytest.raises(UnknownColumn):
            table_group_by(villages, "district")

    def test_ungroup(self, villages):
        grouped = table_group_by(villages, "village")
        result = table_ungroup(grouped)
        assert "groups" not in result
        assert result["rows"] == villages["rows"]
        assert "groups" in grouped


# -------------------------------------
# summarize
# -------------------------------------

class TestSummarize:
    """Tests for table_summarize."""

    def test_mean_per_village(self, villages):
        result = table_summarize(
            table_group_by(villages, "village"),
            {"mean_no_membrs": ("mean", "no_membrs")},
        )
        assert table_to_dict(result) == {"village": ["A", "B"], "mean_no_membrs": [4.0, 2.0]}
        assert "groups" not in result

    def test_count_sums_to_rows(self, interviews):
        result = table_summarize(table_group_by(interviews, "village"), {"n": ("count", None)})
        assert table_column(result, "village") == ["God", "Ruaca", "Chirodzo"]
        assert sum(table_column(result, "n")) == 6

    def test_multiple_keys(self, interviews):
        result = table_summarize(
            table_group_by(interviews, ["village", "respondent_wall_type"]),
            {"n": "count"},
        )
        assert result["columns"] == ["village", "respondent_wall_type", "n"]
        assert len(table_column(result, "n")) == 5

    def test_missing_values_undefined(self, interviews):
        grouped = table_group_by(interviews, "village")
        with pytest.raises(UndefinedAggregate, match="na_rm"):
            table_summarize(grouped, {"mean_no_membrs": ("mean", "no_membrs")})

    def test_missing_values_na_rm(self, interviews):
        grouped = table_group_by(interviews, "village")
        result = table_summarize(grouped, {"mean_no_membrs": agg("mean", "no_membrs", na_rm=True)})
        assert table_column(result, "mean_no_membrs") == [5.0, 9.0, 6.0]

    def test_tuple_with_na_rm(self, interviews):
        grouped = table_group_by(interviews, "village")
        result = table_summarize(grouped, {"max": ("max", "no_membrs", True)})
        assert table_column(result, "max") == [7, 10, 6]

    def test_pre_filtered_missing(self, interviews):
        from tidyshape.relational import table_filter

        filtered = table_filter(interviews, "not is_missing(no_membrs)")
        result = table_summarize(
            table_group_by(filtered, "village"),
            {"mean_no_membrs": ("mean", "no_membrs"), "min": ("min", "no_membrs")},
        )
        assert table_column(result, "mean_no_membrs") == [5.0, 9.0, 6.0]
        assert table_column(result, "min") == [3, 8, 6]

    def test_count_ignores_missing_policy(self, interviews):
        grouped = table_group_by(interviews, "village")
        result = table_summarize(grouped, {"n": ("count", "no_membrs")})
        assert table_column(result, "n") == [3, 2, 1]

    def test_ungrouped_summary(self, villages):
        result = table_summarize(villages, {"total": ("sum", "no_membrs"), "n": ("n", None)})
        assert table_to_dict(result) == {"total": [10], "n": [3]}

    def test_sum_boolean(self):
        table = table_new({"owns_bike": [True, False, True]})
        result = table_summarize(table, {"bikes": ("sum", "owns_bike")})
        assert table_column(result, "bikes") == [2]

    def test_sd_and_var(self):
        table = table_new({"x": [2, 4, 4, 4, 5, 5, 7, 9]})
        result = table_summarize(table, {"sd": ("sd", "x"), "var": ("var", "x"), "median": ("median", "x")})
        assert table_column(result, "var")[0] == pytest.approx(32 / 7)
        assert table_column(result, "sd")[0] == pytest.approx((32 / 7) ** 0.5)
        assert table_column(result, "median") == [4.5]

    def test_sd_single_value_is_missing(self, villages):
        result = table_summarize(table_group_by(villages, "village"), {"sd": ("sd", "no_membrs")})
        assert table_column(result, "sd")[1] is None

    def test_text_min_max(self, interviews):
        result = table_summarize(
            interviews,
            {"first_wall": ("min", "respondent_wall_type"), "last_wall": ("max", "respondent_wall_type")},
        )
        assert table_to_dict(result) == {"first_wall": ["burntbricks"], "last_wall": ["muddaub"]}

    def test_first_last_n_distinct(self, interviews):
        grouped = table_group_by(interviews, "village")
        result = table_summarize(grouped, {
            "first": ("first", "respondent_wall_type"),
            "last": ("last", "no_membrs"),
            "walls": ("n_distinct", "respondent_wall_type"),
        })
        assert table_column(result, "first") == ["muddaub", "burntbricks", "muddaub"]
        assert table_column(result, "last") == [None, 8, 6]
        assert table_column(result, "walls") == [2, 2, 1]

    def test_callable_aggregate(self, villages):
        grouped = table_group_by(villages, "village")
        result = table_summarize(grouped, {"spread": (lambda v: max(v) - min(v), "no_membrs")})
        assert table_column(result, "spread") == [2, 0]

    def test_type_mismatch(self, interviews):
        with pytest.raises(TypeMismatch):
            table_summarize(interviews, {"m": ("mean", "village")})

    def test_unknown_aggregate(self, villages):
        with pytest.raises(TableError, match="Unknown aggregate 'mode'"):
            table_summarize(villages, {"m": ("mode", "no_membrs")})

    def test_unknown_source_column(self, villages):
        with pytest.raises(UnknownColumn):
            table_summarize(villages, {"m": ("mean", "rooms")})

    def test_missing_source_column(self, villages):
        with pytest.raises(TableError, match="needs a source column"):
            table_summarize(villages, {"m": ("mean", None)})

    def test_name_collides_with_key(self, villages):
        with pytest.raises(TableError, match="collides"):
            table_summarize(table_group_by(villages, "village"), {"village": ("count", None)})

    def test_zero_groups(self):
        """A grouped table with no rows gives no rows, not an error."""
        empty = table_new({"village": [], "no_membrs": []})
        result = table_summarize(table_group_by(empty, "village"), {"m": ("mean", "no_membrs")})
        assert result["columns"] == ["village", "m"]
        assert result["rows"] == [[], []]

    def test_empty_ungrouped_mean(self):
        empty = table_new({"no_membrs": []})
        with pytest.raises(EmptyGroup):
            table_summarize(empty, {"m": ("mean", "no_membrs")})
        result = table_summarize(empty, {"n": ("count", None), "s": ("sum", "no_membrs")})
        assert table_to_dict(result) == {"n": [0], "s": [0]}

    def test_na_rm_leaves_nothing(self):
        table = table_new({"x": [None, None]})
        with pytest.raises(EmptyGroup):
            table_summarize(table, {"m": agg("max", "x", na_rm=True)})

    def test_registry_names(self):
        for name in ("mean", "min", "max", "sum", "count"):
            assert name in AGGREGATES
