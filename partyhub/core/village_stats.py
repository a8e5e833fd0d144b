from __future__ import annotations

import math
from datetime import UTC, datetime

from partyhub.api.village_models import (
    CriticalResource,
    DerivedStats,
    EventSeverity,
    ProjectedAmount,
    ResourceAlert,
    ResourceAnalytics,
    ResourceBalance,
    Village,
)

SHORTAGE_THRESHOLD = 0.10
CRITICAL_THRESHOLD = 0.05
SURPLUS_THRESHOLD = 0.95
NO_ESTIMATE = -1

_ISSUE_SEVERITIES = frozenset({EventSeverity.major, EventSeverity.catastrophic})


def _percent(part: float, whole: float) -> int:
    # An empty denominator reads as 0%.
    if whole <= 0:
        return 0
    return math.floor(part / whole * 100)


def _economic_trend(net_profit: float) -> str:
    if net_profit > 0:
        return "positive"
    if net_profit < 0:
        return "negative"
    return "stable"


def _days_since_last_event(village: Village, now: datetime) -> int:
    if not village.event_history:
        return 0
    last = village.event_history[-1].date
    if last.tzinfo is None:
        last = last.replace(tzinfo=UTC)
    return math.floor((now - last).total_seconds() / 86400)


def compute_derived_stats(village: Village, now: datetime | None = None) -> DerivedStats:
    """Read-only aggregate metrics for a village. Never mutates the record."""

    now = now or datetime.now(tz=UTC)
    pop = village.population

    return DerivedStats(
        resource_efficiency=_percent(village.resources.used_capacity, village.resources.total_capacity),
        population_growth_rate=pop.birth_rate - pop.death_rate,
        economic_trend=_economic_trend(village.economy.net_profit),
        housing_coverage=_percent(pop.housed_population, pop.total),
        employment_rate=_percent(pop.employed, pop.employed + pop.unemployed),
        overall_health=math.floor(
            (village.happiness + village.stability + village.prosperity + village.defense) / 4
        ),
        active_issues_count=sum(1 for e in village.current_events if e.severity in _ISSUE_SEVERITIES),
        days_since_last_major_event=_days_since_last_event(village, now),
    )


def shortage_actions(resource: str) -> list[str]:
    return [
        f"Increase {resource} production",
        f"Trade for {resource}",
        f"Reduce {resource} consumption",
    ]


def surplus_actions(resource: str) -> list[str]:
    return [
        f"Trade excess {resource}",
        f"Expand {resource} storage",
        f"Use {resource} for construction",
    ]


def compute_resource_alerts(village: Village) -> list[ResourceAlert]:
    """Shortage/surplus alerts per resource, in the order resources are stored."""

    alerts: list[ResourceAlert] = []
    consumption = village.resources.daily_consumption

    for resource, stock in village.resources.resources.items():
        if stock.maximum <= 0:
            continue
        utilization = stock.current / stock.maximum

        if utilization < SHORTAGE_THRESHOLD:
            daily = max(consumption.get(resource) or 1, 1)
            alerts.append(
                ResourceAlert(
                    resource=resource,
                    type="shortage",
                    severity="critical" if utilization < CRITICAL_THRESHOLD else "high",
                    estimated_time_to_impact=math.floor(stock.current / daily),
                    recommended_actions=shortage_actions(resource),
                )
            )
        elif utilization > SURPLUS_THRESHOLD:
            alerts.append(
                ResourceAlert(
                    resource=resource,
                    type="surplus",
                    severity="medium",
                    estimated_time_to_impact=NO_ESTIMATE,
                    recommended_actions=surplus_actions(resource),
                )
            )

    return alerts


# ---- Resource analytics ----

LOW_STOCK_THRESHOLD = 0.20
QUALITY_DROP_THRESHOLD = 40
QUALITY_BAD_THRESHOLD = 20
PROJECTION_DAYS = 7

_SEVERITY_RANK = {"critical": 4, "high": 3, "medium": 2, "low": 1}


def net_flows(village: Village) -> dict[str, float]:
    """Daily production minus consumption for every stocked resource with either rate set."""

    res = village.resources
    return {
        name: res.daily_production.get(name, 0) - res.daily_consumption.get(name, 0)
        for name in village.resources.resources
        if name in res.daily_production or name in res.daily_consumption
    }


def _quality_tier(quality: float) -> str:
    if quality > 80:
        return "excellent"
    if quality > 60:
        return "good"
    if quality > 40:
        return "fair"
    return "poor"


def _balance(flow: float, current: float) -> ResourceBalance:
    status = "surplus" if flow > 0 else "deficit" if flow < 0 else "balanced"
    return ResourceBalance(
        flow=flow,
        status=status,
        days_until_empty=math.floor(current / abs(flow)) if flow < 0 else NO_ESTIMATE,
    )


def compute_resource_analytics(village: Village) -> ResourceAnalytics:
    res = village.resources
    stocks = res.resources
    production = res.daily_production

    producing = sum(1 for amount in production.values() if amount > 0)
    tiers: dict[str, int] = {}
    for stock in stocks.values():
        tier = _quality_tier(stock.quality)
        tiers[tier] = tiers.get(tier, 0) + 1

    return ResourceAnalytics(
        total_resources=sum(s.current for s in stocks.values()),
        storage_utilization=round(res.used_capacity / res.total_capacity * 100) if res.total_capacity > 0 else 0,
        production_efficiency=producing / len(production) * 100 if production else 0,
        resource_balance={name: _balance(flow, stocks[name].current) for name, flow in net_flows(village).items()},
        critical_resources=[
            CriticalResource(
                resource=name,
                current=stock.current,
                maximum=stock.maximum,
                percentage=round(stock.current / stock.maximum * 100),
                quality=stock.quality,
            )
            for name, stock in stocks.items()
            if stock.maximum > 0 and stock.current / stock.maximum < LOW_STOCK_THRESHOLD
        ],
        quality_distribution=tiers,
    )


def _projection_status(projected: float, current: float) -> str:
    if projected == 0:
        return "depleted"
    if projected < current * 0.2:
        return "critical"
    if projected < current * 0.5:
        return "low"
    return "stable"


def project_resources(village: Village, days: int = PROJECTION_DAYS) -> dict[str, list[ProjectedAmount]]:
    """Straight-line stock projection from today's net flow, floored at zero."""

    stocks = village.resources.resources
    out: dict[str, list[ProjectedAmount]] = {}
    for name, flow in net_flows(village).items():
        current = stocks[name].current
        points = []
        for day in range(1, days + 1):
            projected = max(0, current + flow * day)
            points.append(ProjectedAmount(day=day, amount=projected, status=_projection_status(projected, current)))
        out[name] = points
    return out


def compute_storage_alerts(village: Village) -> list[ResourceAlert]:
    """Low-stock, surplus, quality and spoilage alerts, most severe first."""

    alerts: list[ResourceAlert] = []
    consumption = village.resources.daily_consumption

    for name, stock in village.resources.resources.items():
        daily = consumption.get(name) or 0

        if stock.maximum > 0:
            utilization = stock.current / stock.maximum
            if utilization < LOW_STOCK_THRESHOLD:
                if utilization < CRITICAL_THRESHOLD:
                    severity = "critical"
                elif utilization < SHORTAGE_THRESHOLD:
                    severity = "high"
                else:
                    severity = "medium"
                alerts.append(
                    ResourceAlert(
                        resource=name,
                        type="shortage",
                        severity=severity,
                        estimated_time_to_impact=math.floor(stock.current / daily) if daily > 0 else NO_ESTIMATE,
                        recommended_actions=[
                            f"Increase {name} production",
                            f"Reduce {name} consumption",
                            f"Establish trade routes for {name}",
                            f"Build more {name} production buildings",
                        ],
                    )
                )
            if utilization > SURPLUS_THRESHOLD:
                alerts.append(
                    ResourceAlert(
                        resource=name,
                        type="surplus",
                        severity="low",
                        estimated_time_to_impact=NO_ESTIMATE,
                        recommended_actions=[
                            f"Trade excess {name} for other resources",
                            f"Build additional {name} storage",
                            f"Use {name} for construction or upgrades",
                        ],
                    )
                )

        if stock.quality < QUALITY_DROP_THRESHOLD:
            alerts.append(
                ResourceAlert(
                    resource=name,
                    type="quality_drop",
                    severity="high" if stock.quality < QUALITY_BAD_THRESHOLD else "medium",
                    estimated_time_to_impact=NO_ESTIMATE,
                    recommended_actions=[
                        f"Improve {name} storage conditions",
                        f"Use low-quality {name} before it degrades further",
                        "Invest in better preservation methods",
                    ],
                )
            )

        if stock.spoilage_rate > 0 and stock.current > 0:
            spoiled = stock.current * stock.spoilage_rate
            # More than a tenth of daily use lost to spoilage.
            if spoiled > daily * 0.1:
                alerts.append(
                    ResourceAlert(
                        resource=name,
                        type="spoilage",
                        severity="high" if spoiled > daily * 0.3 else "medium",
                        estimated_time_to_impact=math.floor(stock.current / spoiled),
                        recommended_actions=[
                            f"Consume {name} faster",
                            f"Trade {name} before spoilage",
                            "Improve preservation methods",
                            "Build better storage facilities",
                        ],
                    )
                )

    alerts.sort(key=lambda a: _SEVERITY_RANK[a.severity], reverse=True)
    return alerts
