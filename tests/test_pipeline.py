"""Tests for filtering and sorting merged tokens."""

from dex_aggregator.schemas.token import SortBy, SortOrder, Timeframe, TokenQuery
from dex_aggregator.services.aggregation.pipeline import (
    filter_and_sort,
    filter_tokens,
    price_change_for,
    sort_tokens,
    sort_value,
)
from tests.conftest import make_token


def addresses(tokens):
    return [t.token_address for t in tokens]


class TestFilters:
    def test_min_volume(self):
        tokens = [
            make_token("LOW", volume_sol=5.0),
            make_token("MID", volume_sol=10.0),
            make_token("HIGH", volume_sol=50.0),
        ]

        kept = filter_tokens(tokens, TokenQuery(min_volume=10))

        assert addresses(kept) == ["MID", "HIGH"]

    def test_zero_threshold_is_applied(self):
        tokens = [make_token("FLAT", price_1hr_change=0.0), make_token("DOWN", price_1hr_change=-3.0)]

        assert addresses(filter_tokens(tokens, TokenQuery(min_price_change=0))) == ["FLAT"]

    def test_absent_threshold_keeps_everything(self):
        tokens = [make_token("FLAT", price_1hr_change=0.0), make_token("DOWN", price_1hr_change=-3.0)]

        assert addresses(filter_tokens(tokens, TokenQuery())) == ["FLAT", "DOWN"]

    def test_filters_are_conjunctive(self):
        tokens = [
            make_token("BOTH", volume_sol=100.0, market_cap_sol=1000.0),
            make_token("VOLUME_ONLY", volume_sol=100.0, market_cap_sol=1.0),
            make_token("MCAP_ONLY", volume_sol=1.0, market_cap_sol=1000.0),
        ]

        kept = filter_tokens(tokens, TokenQuery(min_volume=50, min_market_cap=500))

        assert addresses(kept) == ["BOTH"]

    def test_min_liquidity(self):
        tokens = [make_token("DRY", liquidity_sol=1.0), make_token("WET", liquidity_sol=500.0)]

        assert addresses(filter_tokens(tokens, TokenQuery(min_liquidity=100))) == ["WET"]

    def test_price_change_range_uses_timeframe(self):
        tokens = [
            make_token("A", price_1hr_change=50.0, price_24hr_change=2.0),
            make_token("B", price_1hr_change=1.0, price_24hr_change=40.0),
        ]
        query = TokenQuery(timeframe=Timeframe.H24, min_price_change=-5, max_price_change=5)

        assert addresses(filter_tokens(tokens, query)) == ["A"]

    def test_protocol_is_case_insensitive(self):
        tokens = [make_token("R", protocol="Raydium"), make_token("O", protocol="orca")]

        assert addresses(filter_tokens(tokens, TokenQuery(protocol="raydium"))) == ["R"]

    def test_source_membership(self):
        tokens = [
            make_token("DEX", "dexscreener"),
            make_token("GECKO", "geckoterminal"),
            make_token("BOTH", sources=["geckoterminal", "dexscreener"]),
        ]

        kept = filter_tokens(tokens, TokenQuery(source="geckoterminal"))

        assert addresses(kept) == ["GECKO", "BOTH"]


class TestPriceChangeFor:
    def test_timeframe_figures(self):
        token = make_token("A", price_1hr_change=1.0, price_24hr_change=24.0, price_7d_change=7.0)

        assert price_change_for(token, Timeframe.H1) == 1.0
        assert price_change_for(token, Timeframe.H24) == 24.0
        assert price_change_for(token, Timeframe.D7) == 7.0

    def test_falls_back_to_hourly_when_missing(self):
        token = make_token("A", price_1hr_change=1.5)

        assert price_change_for(token, Timeframe.H24) == 1.5
        assert price_change_for(token, Timeframe.D7) == 1.5

    def test_zero_is_not_missing(self):
        token = make_token("A", price_1hr_change=1.5, price_24hr_change=0.0)

        assert price_change_for(token, Timeframe.H24) == 0.0


class TestSort:
    def test_volume_descending(self):
        tokens = [
            make_token("A", volume_sol=200.0),
            make_token("B", volume_sol=900.0),
            make_token("C", volume_sol=500.0),
        ]

        ordered = sort_tokens(tokens, TokenQuery(sort_by=SortBy.VOLUME, sort_order=SortOrder.DESC))

        assert addresses(ordered) == ["B", "C", "A"]

    def test_market_cap_ascending(self):
        tokens = [make_token("A", market_cap_sol=3.0), make_token("B", market_cap_sol=1.0)]

        ordered = sort_tokens(tokens, TokenQuery(sort_by=SortBy.MARKET_CAP, sort_order=SortOrder.ASC))

        assert addresses(ordered) == ["B", "A"]

    def test_price_change_sorts_by_timeframe(self):
        tokens = [
            make_token("A", price_1hr_change=9.0, price_7d_change=1.0),
            make_token("B", price_1hr_change=1.0, price_7d_change=9.0),
        ]
        query = TokenQuery(sort_by=SortBy.PRICE_CHANGE, timeframe=Timeframe.D7)

        assert addresses(sort_tokens(tokens, query)) == ["B", "A"]

    def test_ties_break_by_address_in_both_directions(self):
        tokens = [make_token(a, volume_sol=10.0) for a in ("ZED", "ALPHA", "MIKE")]

        desc = sort_tokens(tokens, TokenQuery(sort_order=SortOrder.DESC))
        asc = sort_tokens(tokens, TokenQuery(sort_order=SortOrder.ASC))

        assert addresses(desc) == ["ALPHA", "MIKE", "ZED"]
        assert addresses(asc) == ["ALPHA", "MIKE", "ZED"]

    def test_order_does_not_depend_on_input_order(self):
        tokens = [make_token(f"T{i}", volume_sol=float(i % 3)) for i in range(9)]
        query = TokenQuery()

        assert addresses(sort_tokens(tokens, query)) == addresses(sort_tokens(tokens[::-1], query))

    def test_sort_value_projection(self):
        token = make_token("A", volume_sol=1.0, market_cap_sol=2.0, liquidity_sol=3.0, price_1hr_change=4.0)

        assert sort_value(token, SortBy.VOLUME) == 1.0
        assert sort_value(token, SortBy.MARKET_CAP) == 2.0
        assert sort_value(token, SortBy.LIQUIDITY) == 3.0
        assert sort_value(token, SortBy.PRICE_CHANGE) == 4.0

    def test_filter_then_sort(self):
        tokens = [
            make_token("A", volume_sol=5.0),
            make_token("B", volume_sol=50.0),
            make_token("C", volume_sol=500.0),
        ]

        assert addresses(filter_and_sort(tokens, TokenQuery(min_volume=10))) == ["C", "B"]
