from datetime import date, timedelta

import pytest

from app.services.forecast_service import (
    CoverageConfig, CoverageToggles, ProductStock, PlannedEntry,
    get_season_factor, compute_weekly_demand, diff_in_weeks, filter_planned,
    compute_coverage, sort_coverages, summarize_coverages, normalize_aws_unit
)

TODAY = date(2026, 3, 2)
BOXES = CoverageConfig(lead_time_weeks=13, aws_unit="boxes")


def stock(**overrides):
    values = dict(
        product_id=1,
        name="Trail Sock",
        pairs_per_box=12,
        average_weekly_sales=7,
        seasonal_factors={},
        incoming_pairs=0,
        wml_pairs=252,
        gmr_pairs=0,
        amz_pairs=0,
    )
    values.update(overrides)
    return ProductStock(**values)


def segment(coverage, key):
    return next(s for s in coverage.segments if s.key == key)


class TestDemand:
    
    @pytest.mark.parametrize("factors,expected", [
        ({"mar": 2.0}, 2.0),
        ({"mar": 0}, 1.0),
        ({"mar": -0.5}, 1.0),
        ({"apr": 3.0}, 1.0),
        ({}, 1.0),
        (None, 1.0),
    ])
    def test_season_factor(self, factors, expected):
        assert get_season_factor(factors, 3) == expected
    
    def test_weekly_demand_in_boxes(self):
        assert compute_weekly_demand(7, 12, 1.0, "boxes") == 84
    
    def test_weekly_demand_in_pairs(self):
        assert compute_weekly_demand(10, 12, 1.5, "pairs") == 15
    
    def test_weekly_demand_never_negative(self):
        assert compute_weekly_demand(-3, 12, 1.0, "boxes") == 0
    
    def test_unknown_unit_means_boxes(self):
        assert normalize_aws_unit("PAIRS") == "pairs"
        assert normalize_aws_unit("cartons") == "boxes"
        assert normalize_aws_unit(None) == "boxes"
    
    def test_diff_in_weeks_floors_at_zero(self):
        assert diff_in_weeks(TODAY + timedelta(days=14), TODAY) == 2
        assert diff_in_weeks(TODAY - timedelta(days=14), TODAY) == 0


class TestCoverage:
    
    def test_reorder_scenario(self):
        coverage = compute_coverage(
            stock(), [], BOXES, TODAY + timedelta(weeks=5),
            CoverageToggles(include_amazon=False), month=3, today=TODAY
        )
        assert coverage.weekly_demand == 84
        assert coverage.total_weeks == 3
        assert coverage.to_order_pairs == 168
        assert coverage.to_order_boxes == 14
        assert coverage.weeks_to_target == 5
        assert coverage.stockout_date == TODAY + timedelta(days=21)
    
    def test_season_factor_scales_demand(self):
        coverage = compute_coverage(
            stock(seasonal_factors={"jun": 2.0}), [], BOXES, date(2026, 6, 15), today=TODAY
        )
        assert coverage.season_factor == 2.0
        assert coverage.weekly_demand == 168
    
    def test_no_demand(self):
        coverage = compute_coverage(stock(average_weekly_sales=0), [], BOXES, TODAY + timedelta(weeks=5), today=TODAY)
        assert coverage.no_demand
        assert coverage.total_weeks is None
        assert coverage.internal_weeks is None
        assert coverage.stockout_date is None
        assert coverage.to_order_pairs == 0
        assert all(s.weeks == 0 for s in coverage.segments)
        
        data = coverage.to_dict()
        assert data["noDemand"] is True
        assert data["totals"]["totalWeeks"] is None
    
    def test_amazon_toggle(self):
        product = stock(amz_pairs=168)
        with_amz = compute_coverage(product, [], BOXES, TODAY, CoverageToggles(include_amazon=True), today=TODAY)
        without_amz = compute_coverage(product, [], BOXES, TODAY, CoverageToggles(include_amazon=False), today=TODAY)
        
        assert with_amz.total_weeks == 5
        assert without_amz.total_weeks == 3
        assert with_amz.internal_weeks == without_amz.internal_weeks == 3
        assert segment(without_amz, "amz").include is False
    
    def test_segments_order(self):
        coverage = compute_coverage(
            stock(incoming_pairs=24, gmr_pairs=12),
            [PlannedEntry(quantity_boxes=2)],
            BOXES, TODAY, today=TODAY
        )
        assert [s.key for s in coverage.segments] == ["incoming", "wml", "gmr", "amz", "additional"]
        assert segment(coverage, "incoming").boxes == 2
        assert segment(coverage, "additional").pairs == 24
    
    def test_additional_counts_toward_internal_weeks(self):
        coverage = compute_coverage(stock(), [PlannedEntry(quantity_boxes=7)], BOXES, TODAY, today=TODAY)
        assert coverage.internal_weeks == 4
        assert coverage.total_weeks == 4
        assert segment(coverage, "additional").hatched is False
    
    def test_additional_toggle_off(self):
        coverage = compute_coverage(
            stock(), [PlannedEntry(quantity_boxes=7)], BOXES, TODAY,
            CoverageToggles(include_additional=False), today=TODAY
        )
        assert "additional" not in [s.key for s in coverage.segments]
        assert coverage.total_weeks == 3
    
    def test_target_in_the_past_orders_nothing(self):
        coverage = compute_coverage(stock(), [], BOXES, TODAY - timedelta(weeks=2), today=TODAY)
        assert coverage.weeks_to_target == 0
        assert coverage.to_order_pairs == 0
    
    def test_zero_pairs_per_box(self):
        coverage = compute_coverage(
            stock(pairs_per_box=0, average_weekly_sales=10, wml_pairs=20),
            [], CoverageConfig(aws_unit="pairs"), TODAY + timedelta(weeks=4), today=TODAY
        )
        assert coverage.to_order_pairs == 20
        assert coverage.to_order_boxes == 0
    
    def test_to_order_never_decreases_with_later_target(self):
        product = stock(seasonal_factors={"jan": 0.5, "jul": 3.0})
        previous = -1.0
        for weeks in range(0, 40):
            coverage = compute_coverage(
                product, [], BOXES, TODAY + timedelta(weeks=weeks), month=7, today=TODAY
            )
            assert coverage.to_order_pairs >= previous
            previous = coverage.to_order_pairs


class TestPlannedFilter:
    
    def entries(self):
        return [
            PlannedEntry(id=1, quantity_boxes=1),
            PlannedEntry(id=2, quantity_boxes=1, eta_date=TODAY),
            PlannedEntry(id=3, quantity_boxes=1, eta_date=TODAY + timedelta(days=1)),
            PlannedEntry(id=4, quantity_boxes=1, scope="simulation"),
            PlannedEntry(id=5, quantity_boxes=1, is_active=False),
        ]
    
    def test_defaults_keep_committed_current_active(self):
        kept = filter_planned(self.entries(), CoverageToggles(), TODAY)
        assert [e.id for e in kept] == [1, 2]
    
    def test_include_future_and_simulations(self):
        toggles = CoverageToggles(include_future=True, include_simulations=True)
        kept = filter_planned(self.entries(), toggles, TODAY)
        assert [e.id for e in kept] == [1, 2, 3, 4]
    
    def test_included_simulation_is_hatched(self):
        coverage = compute_coverage(
            stock(), self.entries(), BOXES, TODAY,
            CoverageToggles(include_simulations=True), today=TODAY
        )
        additional = segment(coverage, "additional")
        assert additional.hatched is True
        assert additional.pairs == 36


def test_sort_puts_no_demand_last():
    a = compute_coverage(stock(product_id=1, name="A", wml_pairs=420), [], BOXES, TODAY, today=TODAY)
    b = compute_coverage(stock(product_id=2, name="B", wml_pairs=84), [], BOXES, TODAY, today=TODAY)
    c = compute_coverage(stock(product_id=3, name="C", average_weekly_sales=0), [], BOXES, TODAY, today=TODAY)
    
    assert [cov.name for cov in sort_coverages([c, a, b])] == ["B", "A", "C"]


class TestFleetTotals:
    
    def test_totals_skip_products_without_demand(self):
        short = CoverageConfig(lead_time_weeks=2, aws_unit="boxes")
        coverages = sort_coverages([
            compute_coverage(stock(product_id=1, name="A", wml_pairs=420, amz_pairs=168), [], short, TODAY, today=TODAY),
            compute_coverage(stock(product_id=2, name="B", wml_pairs=84), [], short, TODAY, today=TODAY),
            compute_coverage(stock(product_id=3, name="C", average_weekly_sales=0), [], short, TODAY, today=TODAY),
        ])
        
        totals = summarize_coverages(coverages, short, weeks_to_target=0)
        
        assert totals["internalPairs"] == 504
        assert totals["allPairs"] == 672
        assert totals["weeklyDemand"] == 168
        assert totals["internalWeeks"] == 3
        assert totals["allWeeks"] == 4
        # A covers (420 + 168) / 84 weeks, longer than lead time and target
        assert totals["maxWeeks"] == 7
    
    def test_totals_without_any_demand(self):
        idle = [compute_coverage(stock(average_weekly_sales=0), [], BOXES, TODAY, today=TODAY)]
        
        totals = summarize_coverages(idle, BOXES, weeks_to_target=0)
        
        assert totals["internalPairs"] == 0
        assert totals["allPairs"] == 0
        assert totals["internalWeeks"] == 0
        assert totals["allWeeks"] == 0
        assert totals["maxWeeks"] == 13
    
    def test_max_weeks_never_below_one(self):
        none = CoverageConfig(lead_time_weeks=0, aws_unit="boxes")
        assert summarize_coverages([], none, weeks_to_target=0)["maxWeeks"] == 1
