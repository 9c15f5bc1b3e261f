# collision_os/services/metrics_service.py
"""
Metrics & margin calculations for loaner returns, fleet dashboards and parts.

Pure functions over plain objects. Currency is carried as Decimal end to end;
percentages keep their raw value for aggregation and are rounded to one
decimal only when displayed. Durations round partial days up.
"""

import math
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping, Optional

from collision_os.services.status_graph import FleetStatus, PartStatus, status_value

CENT = Decimal("0.01")
TENTH = Decimal("0.1")
ZERO = Decimal("0")
HUNDRED = Decimal("100")
SECONDS_PER_DAY = 86400


def to_decimal(value) -> Decimal:
    """Decimal from int/float/str/Decimal; None and unparseable input count as zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO


def display(value, places: Decimal = TENTH) -> float:
    """Round half-up for display only."""
    return float(to_decimal(value).quantize(places, rounding=ROUND_HALF_UP))


def money(value) -> float:
    return display(value, CENT)


def percent(part, whole) -> Decimal:
    """Raw percentage part/whole×100, zero when whole is zero."""
    whole = to_decimal(whole)
    if whole == 0:
        return ZERO
    return to_decimal(part) / whole * HUNDRED


def ceil_days(start, end) -> int:
    """Whole days between two instants, partial days rounded up. Never negative."""
    if isinstance(start, datetime) and isinstance(end, datetime):
        seconds = (end - start).total_seconds()
        return max(0, math.ceil(seconds / SECONDS_PER_DAY))
    if isinstance(start, datetime):
        start = start.date()
    if isinstance(end, datetime):
        end = end.date()
    return max(0, (end - start).days)


def days_in_status(changed_at: Optional[datetime], now: datetime) -> int:
    return ceil_days(changed_at, now) if changed_at else 0


# ── Loaner usage ───────────────────────────────────────────────────────────

@dataclass
class UsageMetrics:
    rental_duration_days: int
    miles_driven: int
    average_miles_per_day_raw: Decimal
    checkout_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None

    @property
    def average_miles_per_day(self) -> float:
        return display(self.average_miles_per_day_raw)

    def to_dict(self) -> dict:
        return {
            "rental_duration_days": self.rental_duration_days,
            "miles_driven": self.miles_driven,
            "average_miles_per_day": self.average_miles_per_day,
            "checkout_at": self.checkout_at.isoformat() if self.checkout_at else None,
            "returned_at": self.returned_at.isoformat() if self.returned_at else None,
        }


def calculate_usage(checkout_at, returned_at, checkout_odometer, return_odometer) -> UsageMetrics:
    """Duration by ceiling of elapsed time, distance delta (never negative), average per day."""
    days = ceil_days(checkout_at, returned_at) if checkout_at and returned_at else 0
    miles = max(0, int(return_odometer or 0) - int(checkout_odometer or 0))
    average = Decimal(miles) / Decimal(days) if days > 0 else ZERO
    return UsageMetrics(days, miles, average, checkout_at, returned_at)


def total_charges(charges: Optional[Mapping]) -> Decimal:
    """Sum of additional charges; blank or non-numeric entries count as zero."""
    return sum((to_decimal(v) for v in (charges or {}).values()), ZERO)


def assess_damage(new_damage_found: bool, estimated_repair_cost=None,
                  high_priority_cost=500) -> dict:
    if not new_damage_found:
        return {"overall_condition": "good", "service_required": False,
                "estimated_repair_cost": 0.0, "repair_priority": None}
    cost = to_decimal(estimated_repair_cost)
    return {
        "overall_condition": "damaged",
        "service_required": True,
        "estimated_repair_cost": money(cost),
        "repair_priority": "high" if cost > to_decimal(high_priority_cost) else "low",
    }


# ── Margins ────────────────────────────────────────────────────────────────

@dataclass
class MarginFigures:
    sell_price: Decimal
    cost_price: Decimal

    @property
    def margin_amount(self) -> Decimal:
        return self.sell_price - self.cost_price

    @property
    def margin_percentage_raw(self) -> Decimal:
        return percent(self.margin_amount, self.sell_price)

    @property
    def margin_percentage(self) -> float:
        return display(self.margin_percentage_raw)

    def to_dict(self) -> dict:
        return {
            "sell_price": money(self.sell_price),
            "cost_price": money(self.cost_price),
            "margin_amount": money(self.margin_amount),
            "margin_percentage": self.margin_percentage,
        }


def calculate_margin(unit_cost, quantity=1, discount_percentage=0) -> MarginFigures:
    """Sell = unit cost × quantity; cost = sell less the vendor discount."""
    sell = to_decimal(unit_cost) * to_decimal(quantity)
    cost = sell * (1 - to_decimal(discount_percentage) / HUNDRED)
    return MarginFigures(sell, cost)


@dataclass
class MarginSummary:
    total_sell: Decimal = ZERO
    total_cost: Decimal = ZERO
    part_count: int = 0

    def add(self, figures: MarginFigures) -> None:
        self.total_sell += figures.sell_price
        self.total_cost += figures.cost_price
        self.part_count += 1

    @property
    def total_margin(self) -> Decimal:
        return self.total_sell - self.total_cost

    @property
    def margin_percentage_raw(self) -> Decimal:
        return percent(self.total_margin, self.total_sell)

    def to_dict(self) -> dict:
        return {
            "total_sell": money(self.total_sell),
            "total_cost": money(self.total_cost),
            "total_margin": money(self.total_margin),
            "margin_percentage": display(self.margin_percentage_raw),
            "part_count": self.part_count,
        }


def part_margin(part) -> MarginFigures:
    vendor = getattr(part, "vendor", None)
    discount = getattr(vendor, "discount_percentage", 0) if vendor is not None else 0
    return calculate_margin(part.unit_cost, part.quantity, discount or 0)


def analyze_margins(parts: Iterable, vendor_only: bool = False) -> dict:
    """
    Overall, per-vendor and per-status margin totals.
    Parts without a vendor are costed at sell price unless vendor_only skips them.
    """
    overall = MarginSummary()
    by_vendor: Dict[str, MarginSummary] = OrderedDict()
    by_status: Dict[str, MarginSummary] = OrderedDict()

    for part in parts:
        vendor = getattr(part, "vendor", None)
        if vendor_only and vendor is None:
            continue
        figures = part_margin(part)
        overall.add(figures)
        if vendor is not None:
            by_vendor.setdefault(vendor.name, MarginSummary()).add(figures)
        by_status.setdefault(status_value(part.status) or PartStatus.NEEDED.value, MarginSummary()).add(figures)

    return {
        "overall": overall.to_dict(),
        "by_vendor": {k: v.to_dict() for k, v in by_vendor.items()},
        "by_status": {k: v.to_dict() for k, v in by_status.items()},
    }


# ── Parts workflow ─────────────────────────────────────────────────────────

def status_breakdown(parts: Iterable) -> Dict[str, int]:
    counts = OrderedDict((s.value, 0) for s in PartStatus)
    for part in parts:
        key = status_value(part.status) or PartStatus.NEEDED.value
        counts[key] = counts.get(key, 0) + 1
    return counts


def parts_workflow(parts: List, now: datetime, critical_delay_days: int = 7) -> dict:
    """Group a repair order's parts into status buckets with workflow metrics."""
    buckets: Dict[str, list] = OrderedDict((s.value, []) for s in PartStatus)
    total_value = ZERO

    for part in parts:
        key = status_value(part.status) or PartStatus.NEEDED.value
        line_total = to_decimal(part.unit_cost) * to_decimal(part.quantity)
        total_value += line_total
        buckets.setdefault(key, []).append({
            "id": part.id,
            "part_number": part.part_number,
            "description": part.part_description,
            "quantity": part.quantity,
            "unit_cost": money(part.unit_cost),
            "total_cost": money(line_total),
            "vendor": part.vendor.name if getattr(part, "vendor", None) else "Not assigned",
            "expected_date": part.expected_delivery_date.isoformat() if part.expected_delivery_date else None,
            "days_in_status": days_in_status(part.status_changed_at, now),
            "priority": part.priority or "normal",
            "notes": part.sourcing_notes,
        })

    total = len(parts)
    metrics = {
        "total_parts": total,
        "total_value": money(total_value),
        "completion_rate": display(percent(len(buckets[PartStatus.INSTALLED.value]), total)),
        "parts_on_order": len(buckets[PartStatus.ORDERED.value]) + len(buckets[PartStatus.BACKORDERED.value]),
        "ready_to_install": len(buckets[PartStatus.RECEIVED.value]),
        "critical_delays": sum(
            1 for p in buckets[PartStatus.BACKORDERED.value] if p["days_in_status"] > critical_delay_days
        ),
    }
    return {"workflow_buckets": buckets, "workflow_metrics": metrics}


# ── Fleet ──────────────────────────────────────────────────────────────────

def fleet_metrics(vehicles: Iterable) -> dict:
    vehicles = list(vehicles)
    total = len(vehicles)
    counts = {s.value: 0 for s in FleetStatus}
    for v in vehicles:
        key = status_value(v.status)
        counts[key] = counts.get(key, 0) + 1
    return {
        "total_fleet_size": total,
        "currently_available": counts[FleetStatus.AVAILABLE.value],
        "currently_reserved": counts[FleetStatus.RESERVED.value],
        "currently_rented": counts[FleetStatus.RENTED.value],
        "in_maintenance": counts[FleetStatus.MAINTENANCE.value],
        "out_of_service": counts[FleetStatus.OUT_OF_SERVICE.value],
        "utilization_rate": display(percent(counts[FleetStatus.RENTED.value], total)),
        "availability_rate": display(percent(counts[FleetStatus.AVAILABLE.value], total)),
        "maintenance_rate": display(percent(counts[FleetStatus.MAINTENANCE.value], total)),
    }


def availability_on(target: date, fleet_size: int, reservations: Iterable) -> dict:
    """How many units are committed on a given day (closed range check, as shown on the dashboard)."""
    reserved = sum(
        1 for r in reservations
        if r.pickup_date <= target <= r.expected_return_date
    )
    available = max(0, fleet_size - reserved)
    return {
        "target_date": target.isoformat(),
        "total_fleet_size": fleet_size,
        "reserved_vehicles": reserved,
        "available_vehicles": available,
        "availability_percentage": display(percent(available, fleet_size)) if fleet_size else 100.0,
    }


@dataclass
class UtilizationThresholds:
    low_percent: float = 50.0
    high_percent: float = 85.0
    min_fleet_size: int = 5


def fleet_utilization(vehicles: Iterable, completed: Iterable, period_start: datetime,
                      period_end: datetime) -> dict:
    """Rental days over available vehicle-days for completed rentals inside the period."""
    vehicles = list(vehicles)
    period_days = ceil_days(period_start, period_end)
    rentals = [
        r for r in completed
        if r.checkout_at and r.return_at
        and r.checkout_at >= period_start and r.return_at <= period_end
    ]
    rental_days = sum(ceil_days(r.checkout_at, r.return_at) for r in rentals)
    vehicle_days = len(vehicles) * period_days

    return {
        "metrics": {
            "total_fleet_size": len(vehicles),
            "analysis_period_days": period_days,
            "total_rental_days": rental_days,
            "completed_rentals": len(rentals),
            "utilization_rate": display(percent(rental_days, vehicle_days)),
            "average_rental_duration": display(
                Decimal(rental_days) / Decimal(len(rentals)) if rentals else ZERO
            ),
        },
        "vehicle_performance": [
            {
                "vehicle_id": v.id,
                "vehicle_number": v.vehicle_number,
                "make_model": f"{v.make} {v.model}",
                "rentals_count": v.total_rentals or 0,
                "total_miles": v.total_miles or 0,
            }
            for v in vehicles
        ],
    }


def utilization_recommendations(metrics: dict,
                                thresholds: Optional[UtilizationThresholds] = None) -> List[str]:
    thresholds = thresholds or UtilizationThresholds()
    recommendations = []
    rate = metrics["utilization_rate"]
    if rate < thresholds.low_percent:
        recommendations.append("Consider reducing fleet size or increasing marketing efforts")
    elif rate > thresholds.high_percent:
        recommendations.append("Consider expanding fleet to meet demand")
    if metrics["total_fleet_size"] < thresholds.min_fleet_size:
        recommendations.append("Consider adding more vehicles for better availability")
    return recommendations
