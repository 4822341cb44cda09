"""
Tests for quick-wins detection: filtering, candidate fields, ordering.
"""

import pytest

from search_console_mcp.core.quick_wins import (
    AnalyticsRow,
    QuickWinCandidate,
    QuickWinThresholds,
    detect,
    round_half_up,
)


class TestCandidateFields:
    """A single qualifying row becomes one fully populated candidate."""

    def test_buy_shoes_scenario(self, quick_win_row):
        result = detect([quick_win_row], QuickWinThresholds())

        assert len(result) == 1
        win = result[0]
        assert isinstance(win, QuickWinCandidate)
        assert win.query == "buy shoes"
        assert win.page == "/shoes"
        assert win.current_position == 6.5
        assert win.impressions == 100
        assert win.current_clicks == 2
        assert win.current_ctr == 2.00
        assert win.potential_clicks == 5
        assert win.additional_clicks == 3
        assert win.opportunity == "High"
        assert win.optimization_note == "Move from position 6.5 to improve CTR"

    def test_as_dict_uses_wire_names(self, quick_win_row):
        data = detect([quick_win_row])[0].as_dict()

        assert data == {
            "query": "buy shoes",
            "page": "/shoes",
            "currentPosition": 6.5,
            "impressions": 100,
            "currentClicks": 2,
            "currentCtr": 2.0,
            "potentialClicks": 5,
            "additionalClicks": 3,
            "opportunity": "High",
            "optimizationNote": "Move from position 6.5 to improve CTR",
        }

    def test_no_upside_is_low_opportunity(self):
        # 60 impressions at 5% target is 3 clicks; already has 1 click at 1.67% CTR
        row = {"keys": ["q", "/p"], "clicks": 1, "impressions": 60, "ctr": 0.0167, "position": 5}
        slow = {"keys": ["q", "/p"], "clicks": 4, "impressions": 200, "ctr": 0.02, "position": 5}

        result = detect([row, slow], QuickWinThresholds(max_ctr=2.0))

        assert [w.additional_clicks for w in result] == [6, 2]

        capped = detect(
            [{"keys": ["q", "/p"], "clicks": 9, "impressions": 100, "ctr": 0.0, "position": 5}]
        )
        assert capped[0].potential_clicks == 5
        assert capped[0].additional_clicks == 0
        assert capped[0].opportunity == "Low"

    def test_rounding(self):
        row = {"keys": ["q", "/p"], "clicks": 0, "impressions": 1234, "ctr": 0.012345, "position": 7.25}

        win = detect([row])[0]

        assert win.current_ctr == 1.23
        # exact binary tie rounds up
        assert win.current_position == 7.3
        assert win.optimization_note == "Move from position 7.3 to improve CTR"

    def test_potential_clicks_round_half_up(self):
        # 50 impressions * 5% = 2.5 clicks
        row = {"keys": ["q", "/p"], "clicks": 0, "impressions": 50, "ctr": 0.0, "position": 5}

        assert detect([row])[0].potential_clicks == 3

    def test_round_half_up_helper(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(0.125, 2) == 0.13
        assert round_half_up(1.005, 2) == 1.0  # 1.005 is stored slightly below the tie


class TestFiltering:
    def test_ctr_above_max_is_filtered(self, quick_win_row):
        quick_win_row["ctr"] = 0.03

        assert detect([quick_win_row], QuickWinThresholds()) == []

    def test_low_impressions_never_survive(self, mixed_rows):
        for min_impressions in (0, 50, 100, 301, 5000):
            thresholds = QuickWinThresholds(min_impressions=min_impressions, max_ctr=100)
            result = detect(mixed_rows, thresholds)
            assert all(w.impressions >= min_impressions for w in result)

    def test_position_bounds_are_inclusive(self):
        rows = [
            {"keys": ["a", "/a"], "clicks": 0, "impressions": 100, "ctr": 0, "position": 4},
            {"keys": ["b", "/b"], "clicks": 0, "impressions": 100, "ctr": 0, "position": 10},
            {"keys": ["c", "/c"], "clicks": 0, "impressions": 100, "ctr": 0, "position": 3.99},
            {"keys": ["d", "/d"], "clicks": 0, "impressions": 100, "ctr": 0, "position": 10.01},
        ]

        assert [w.query for w in detect(rows)] == ["a", "b"]

    def test_custom_thresholds(self, mixed_rows):
        thresholds = QuickWinThresholds(
            min_impressions=10,
            max_ctr=10,
            position_range_min=1,
            position_range_max=30,
        )

        result = detect(mixed_rows, thresholds)

        assert {w.query for w in result} == {
            "rare query",
            "running shoes",
            "brand",
            "buy shoes",
            "trail shoes",
            "shoe sale",
            "shoe history",
        }

    def test_missing_and_malformed_numbers_count_as_zero(self):
        rows = [
            {"keys": ["a", "/a"]},
            {"keys": ["b", "/b"], "impressions": "lots", "ctr": None, "position": 5},
            {"keys": ["c", "/c"], "impressions": 100, "ctr": "bad", "position": "6"},
        ]

        result = detect(rows)

        assert [w.query for w in result] == ["c"]
        assert result[0].current_ctr == 0.0
        assert result[0].current_clicks == 0

    def test_empty_input(self):
        assert detect([]) == []


class TestOrdering:
    def test_sorted_by_additional_clicks(self, mixed_rows):
        result = detect(mixed_rows)

        assert [w.query for w in result] == ["trail shoes", "running shoes", "buy shoes"]
        assert [w.additional_clicks for w in result] == [38, 10, 3]
        for a, b in zip(result, result[1:]):
            assert a.additional_clicks >= b.additional_clicks

    def test_ties_keep_input_order(self):
        rows = [
            {"keys": [name, f"/{name}"], "clicks": 0, "impressions": 100, "ctr": 0, "position": 5}
            for name in ("first", "second", "third")
        ]

        assert [w.query for w in detect(rows)] == ["first", "second", "third"]

    def test_repeatable(self, mixed_rows):
        assert detect(mixed_rows) == detect(mixed_rows)

    def test_result_never_longer_than_input(self, mixed_rows):
        assert len(detect(mixed_rows, QuickWinThresholds(min_impressions=0, max_ctr=100,
                                                         position_range_min=0,
                                                         position_range_max=100))) == len(mixed_rows)


class TestKeyMapping:
    def test_page_only_dimension(self):
        row = {"keys": ["https://example.com/shoes"], "clicks": 0, "impressions": 100, "ctr": 0, "position": 5}

        win = detect([row], dimensions=["page"])[0]

        assert win.query == "N/A"
        assert win.page == "https://example.com/shoes"

    def test_query_only_dimension(self):
        row = {"keys": ["buy shoes"], "clicks": 0, "impressions": 100, "ctr": 0, "position": 5}

        win = detect([row], dimensions=["query"])[0]

        assert win.query == "buy shoes"
        assert win.page == "N/A"

    def test_reordered_dimensions(self):
        row = {"keys": ["/shoes", "buy shoes"], "clicks": 0, "impressions": 100, "ctr": 0, "position": 5}

        win = detect([row], dimensions=["page", "query"])[0]

        assert (win.query, win.page) == ("buy shoes", "/shoes")

    def test_short_keys_fall_back(self):
        row = {"keys": ["buy shoes"], "clicks": 0, "impressions": 100, "ctr": 0, "position": 5}

        win = detect([row])[0]

        assert (win.query, win.page) == ("buy shoes", "N/A")

    def test_accepts_analytics_rows(self):
        row = AnalyticsRow(keys=("q", "/p"), clicks=0, impressions=100, ctr=0.01, position=5)

        assert detect([row])[0].query == "q"


@pytest.mark.parametrize(
    "impressions,expected",
    [(10, 1), (30, 2), (100, 5), (110, 6), (250, 13)],
)
def test_potential_clicks_at_half_boundaries(impressions, expected):
    row = {"keys": ["q", "/p"], "clicks": 0, "impressions": impressions, "ctr": 0, "position": 5}

    assert detect([row], QuickWinThresholds(min_impressions=0))[0].potential_clicks == expected
