"""
Forecast Service - Coverage forecast for the replenishment dashboard

The computation functions are pure: they take plain dataclasses and never
touch the session. ForecastService only gathers their inputs from the
database and sorts the results.

Flow per product:
    season factor (target month) -> weekly demand in pairs
    -> stock segments (Incoming, WML, GMR, Amazon, Additional)
    -> weeks of cover, stockout date, quantity to order for the target date
"""
from sqlalchemy.orm import Session
from typing import List, Dict, Optional, Iterable
from datetime import date, timedelta
from dataclasses import dataclass, field
import math
import logging

from app.models import PlannedStock, PlannedScope, MONTH_KEYS

logger = logging.getLogger(__name__)

AWS_UNIT_BOXES = "boxes"
AWS_UNIT_PAIRS = "pairs"


def normalize_aws_unit(value) -> str:
    """Anything other than 'pairs' means average weekly sales are counted in boxes"""
    if value is not None and str(value).strip().lower() == AWS_UNIT_PAIRS:
        return AWS_UNIT_PAIRS
    return AWS_UNIT_BOXES


@dataclass(frozen=True)
class CoverageConfig:
    lead_time_weeks: int = 13
    aws_unit: str = AWS_UNIT_BOXES

    def to_dict(self) -> Dict:
        return {"LEAD_TIME_WEEKS": self.lead_time_weeks, "AWS_UNIT": self.aws_unit}


@dataclass
class CoverageToggles:
    include_amazon: bool = True
    include_additional: bool = True
    include_simulations: bool = False
    include_future: bool = False


@dataclass
class ProductStock:
    """Forecast input for one product. Pair counts are per location."""
    product_id: int
    name: str
    pairs_per_box: int
    average_weekly_sales: float
    seasonal_factors: Dict[str, float] = field(default_factory=dict)
    incoming_pairs: float = 0
    wml_pairs: float = 0
    gmr_pairs: float = 0
    amz_pairs: float = 0


@dataclass
class PlannedEntry:
    quantity_boxes: int
    scope: str = PlannedScope.COMMITTED.value
    eta_date: Optional[date] = None
    is_active: bool = True
    label: Optional[str] = None
    id: Optional[int] = None

    @property
    def is_simulation(self) -> bool:
        return self.scope == PlannedScope.SIMULATION.value

    def is_future(self, today: date) -> bool:
        return self.eta_date is not None and self.eta_date > today


@dataclass
class Segment:
    key: str
    label: str
    pairs: float
    boxes: float
    weeks: float
    include: bool = True
    hatched: bool = False
    planned_pairs: float = 0

    def to_dict(self) -> Dict:
        return {
            "key": self.key,
            "label": self.label,
            "pairs": self.pairs,
            "plannedPairs": self.planned_pairs,
            "boxes": self.boxes,
            "weeks": self.weeks,
            "include": self.include,
            "hatched": self.hatched,
        }


@dataclass
class Coverage:
    product_id: int
    name: str
    weekly_demand: float
    season_factor: float
    segments: List[Segment]
    pairs_internal: float
    pairs_all: float
    total_weeks: Optional[float]
    internal_weeks: Optional[float]
    all_weeks: Optional[float]
    stockout_date: Optional[date]
    to_order_pairs: float
    to_order_boxes: float
    weeks_to_target: float

    @property
    def no_demand(self) -> bool:
        return self.weekly_demand <= 0

    def to_dict(self) -> Dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "weeklyDemand": self.weekly_demand,
            "seasonFactor": self.season_factor,
            "noDemand": self.no_demand,
            "segments": [s.to_dict() for s in self.segments],
            "totals": {
                "pairsInternal": self.pairs_internal,
                "pairsAll": self.pairs_all,
                "weeklyDemand": self.weekly_demand,
                "totalWeeks": self.total_weeks,
                "internalWeeks": self.internal_weeks,
                "allWeeks": self.all_weeks,
            },
            "stockoutDate": self.stockout_date.isoformat() if self.stockout_date else None,
            "toOrder": {
                "pairs": self.to_order_pairs,
                "boxes": self.to_order_boxes,
                "weeksToTarget": self.weeks_to_target,
            },
        }


def _number(value) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return 0.0
    return parsed if math.isfinite(parsed) else 0.0


def get_season_factor(seasonal_factors: Optional[Dict], month: int) -> float:
    """Factor for a 1-indexed month. Missing or non-positive factors count as 1.0."""
    if not seasonal_factors or not 1 <= month <= 12:
        return 1.0
    value = seasonal_factors.get(MONTH_KEYS[month - 1])
    if value is None:
        value = seasonal_factors.get(month, seasonal_factors.get(str(month)))
    factor = _number(value)
    return factor if factor > 0 else 1.0


def compute_weekly_demand(average_weekly_sales, pairs_per_box, season_factor: float, aws_unit: str) -> float:
    """Weekly demand in pairs, never negative"""
    aws = _number(average_weekly_sales)
    if normalize_aws_unit(aws_unit) == AWS_UNIT_PAIRS:
        pairs = aws * season_factor
    else:
        pairs = aws * _number(pairs_per_box) * season_factor
    return pairs if pairs > 0 else 0.0


def diff_in_weeks(later: date, earlier: date) -> float:
    days = (later - earlier).days
    return days / 7 if days > 0 else 0.0


def filter_planned(entries: Iterable[PlannedEntry], toggles: CoverageToggles, today: date) -> List[PlannedEntry]:
    """Planned entries that count toward Additional stock under the given toggles"""
    result = []
    for entry in entries:
        if not entry.is_active:
            continue
        if entry.is_simulation and not toggles.include_simulations:
            continue
        if entry.is_future(today) and not toggles.include_future:
            continue
        result.append(entry)
    return result


def compute_coverage(
    product: ProductStock,
    planned: Iterable[PlannedEntry],
    config: CoverageConfig,
    target_date: date,
    toggles: Optional[CoverageToggles] = None,
    month: Optional[int] = None,
    today: Optional[date] = None
) -> Coverage:
    """
    Coverage of one product up to ``target_date``.
    
    ``month`` selects the seasonal factor and defaults to the target
    date's month. With no demand every week figure is None and nothing
    is ordered.
    """
    toggles = toggles or CoverageToggles()
    today = today or date.today()
    month = month or target_date.month
    
    pairs_per_box = _number(product.pairs_per_box)
    season_factor = get_season_factor(product.seasonal_factors, month)
    weekly_demand = compute_weekly_demand(
        product.average_weekly_sales, pairs_per_box, season_factor, config.aws_unit
    )
    
    def to_boxes(pairs: float) -> float:
        return pairs / pairs_per_box if pairs_per_box > 0 else 0.0
    
    def to_weeks(pairs: float) -> float:
        return pairs / weekly_demand if weekly_demand > 0 else 0.0
    
    base = [
        ("incoming", "Incoming", _number(product.incoming_pairs), True),
        ("wml", "WML", _number(product.wml_pairs), True),
        ("gmr", "GMR", _number(product.gmr_pairs), True),
        ("amz", "Amazon", _number(product.amz_pairs), toggles.include_amazon),
    ]
    
    segments = []
    pairs_internal = 0.0
    pairs_covered = 0.0
    for key, label, pairs, include in base:
        segments.append(Segment(
            key=key, label=label, pairs=pairs,
            boxes=to_boxes(pairs), weeks=to_weeks(pairs), include=include
        ))
        if key != "amz":
            pairs_internal += pairs
        if include:
            pairs_covered += pairs
    
    if toggles.include_additional:
        entries = filter_planned(planned, toggles, today)
        additional_pairs = sum(e.quantity_boxes * pairs_per_box for e in entries)
        if additional_pairs > 0:
            segments.append(Segment(
                key="additional",
                label="Additional",
                pairs=additional_pairs,
                planned_pairs=additional_pairs,
                boxes=to_boxes(additional_pairs),
                weeks=to_weeks(additional_pairs),
                hatched=any(e.is_simulation or e.is_future(today) for e in entries)
            ))
            pairs_internal += additional_pairs
            pairs_covered += additional_pairs
    
    weeks_to_target = diff_in_weeks(target_date, today)
    
    if weekly_demand > 0:
        total_weeks = pairs_covered / weekly_demand
        internal_weeks = pairs_internal / weekly_demand
        stockout_date = today + timedelta(days=math.ceil(total_weeks * 7))
        to_order_pairs = max(0.0, (weeks_to_target - total_weeks) * weekly_demand)
    else:
        total_weeks = internal_weeks = None
        stockout_date = None
        to_order_pairs = 0.0
    
    return Coverage(
        product_id=product.product_id,
        name=product.name,
        weekly_demand=weekly_demand,
        season_factor=season_factor,
        segments=segments,
        pairs_internal=pairs_internal,
        pairs_all=pairs_covered,
        total_weeks=total_weeks,
        internal_weeks=internal_weeks,
        all_weeks=total_weeks,
        stockout_date=stockout_date,
        to_order_pairs=to_order_pairs,
        to_order_boxes=to_boxes(to_order_pairs),
        weeks_to_target=weeks_to_target,
    )


def sort_coverages(coverages: List[Coverage]) -> List[Coverage]:
    """Soonest stockout first, products without demand last"""
    return sorted(
        coverages,
        key=lambda c: (c.total_weeks is None, c.total_weeks if c.total_weeks is not None else 0.0, c.name.lower())
    )

def summarize_coverages(coverages: List[Coverage], config: CoverageConfig, weeks_to_target: float) -> Dict:
    """
    Fleet-wide totals over the products that have demand.
    maxWeeks is the chart horizon: the longest of lead time, weeks to target
    and any product's coverage, never below one week.
    """
    internal_pairs = 0.0
    all_pairs = 0.0
    demand = 0.0
    for coverage in coverages:
        if coverage.weekly_demand > 0:
            internal_pairs += coverage.pairs_internal
            all_pairs += coverage.pairs_all
            demand += coverage.weekly_demand
    
    max_row_weeks = max((c.total_weeks for c in coverages if c.total_weeks is not None), default=0.0)
    candidates = [v for v in (config.lead_time_weeks, weeks_to_target, max_row_weeks) if v >= 0]
    
    return {
        "internalPairs": internal_pairs,
        "allPairs": all_pairs,
        "weeklyDemand": demand,
        "internalWeeks": internal_pairs / demand if demand > 0 else 0,
        "allWeeks": all_pairs / demand if demand > 0 else 0,
        "maxWeeks": max([1] + candidates),
    }



class ForecastService:
    """Loads forecast inputs from the database"""
    
    @staticmethod
    def get_planned_entries(db: Session) -> Dict[int, List[PlannedEntry]]:
        """All planned stock grouped by product. Filtering happens in compute_coverage."""
        grouped: Dict[int, List[PlannedEntry]] = {}
        for row in db.query(PlannedStock).order_by(PlannedStock.id).all():
            grouped.setdefault(row.product_id, []).append(PlannedEntry(
                id=row.id,
                quantity_boxes=row.quantity_boxes,
                scope=row.scope,
                eta_date=row.eta_date,
                is_active=bool(row.is_active),
                label=row.label,
            ))
        return grouped
    
    @staticmethod
    def get_coverage_dashboard(
        db: Session,
        config: CoverageConfig,
        target_date: Optional[date] = None,
        toggles: Optional[CoverageToggles] = None,
        today: Optional[date] = None
    ) -> Dict:
        """Coverage for every active product, sorted for display"""
        from .product_service import ProductService
        
        today = today or date.today()
        target_date = target_date or today + timedelta(weeks=config.lead_time_weeks)
        toggles = toggles or CoverageToggles()
        
        stocks = ProductService.get_stock_snapshots(db)
        planned = ForecastService.get_planned_entries(db)
        
        coverages = sort_coverages([
            compute_coverage(stock, planned.get(stock.product_id, []), config, target_date, toggles, today=today)
            for stock in stocks
        ])
        
        weeks_to_target = diff_in_weeks(target_date, today)
        logger.debug(f"Computed coverage for {len(coverages)} products up to {target_date}")
        
        return {
            "config": config.to_dict(),
            "target_date": target_date.isoformat(),
            "month": target_date.month,
            "weeks_to_target": weeks_to_target,
            "totals": summarize_coverages(coverages, config, weeks_to_target),
            "coverages": [c.to_dict() for c in coverages],
        }
