from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from partyhub.api.village_models import (
    ClimateType,
    CreateVillageRequest,
    EventSeverity,
    HistoricalEvent,
    ResourceStock,
    VillageEvent,
    VillageSize,
)
from partyhub.core.village_stats import (
    compute_derived_stats,
    compute_resource_alerts,
    compute_resource_analytics,
    compute_storage_alerts,
    project_resources,
)
from partyhub.village_store import build_village, starting_resources

NOW = datetime(2025, 6, 1, tzinfo=UTC)


def _village(**overrides):  # type: ignore[no-untyped-def]
    req = CreateVillageRequest(session_id="s1", name="Oakridge", **overrides)
    return build_village(req, now=NOW)


def test_fresh_village_stats_stay_within_bounds() -> None:
    stats = compute_derived_stats(_village(), now=NOW)

    for pct in (stats.resource_efficiency, stats.housing_coverage, stats.employment_rate, stats.overall_health):
        assert 0 <= pct <= 100
    # Every stock starts at half its maximum.
    assert stats.resource_efficiency == 50
    assert stats.overall_health == (65 + 70 + 40 + 30) // 4
    assert stats.population_growth_rate == 25 - 8
    assert stats.days_since_last_major_event == 0


def test_employment_rate_is_zero_with_empty_workforce() -> None:
    village = _village()
    village.population.employed = 0
    village.population.unemployed = 0

    assert compute_derived_stats(village, now=NOW).employment_rate == 0


def test_zero_population_and_capacity_do_not_divide_by_zero() -> None:
    village = _village()
    village.population.total = 0
    village.resources.total_capacity = 0

    stats = compute_derived_stats(village, now=NOW)
    assert stats.housing_coverage == 0
    assert stats.resource_efficiency == 0


@pytest.mark.parametrize(("net_profit", "trend"), [(10, "positive"), (-5, "negative"), (0, "stable")])
def test_economic_trend(net_profit: float, trend: str) -> None:
    village = _village()
    village.economy.net_profit = net_profit
    assert compute_derived_stats(village, now=NOW).economic_trend == trend


def test_active_issues_counts_major_and_catastrophic_only() -> None:
    village = _village()
    village.current_events = [
        VillageEvent(event_id=str(i), name="e", severity=sev, start_date=NOW)
        for i, sev in enumerate(
            [EventSeverity.minor, EventSeverity.major, EventSeverity.catastrophic, EventSeverity.beneficial]
        )
    ]
    assert compute_derived_stats(village, now=NOW).active_issues_count == 2


def test_days_since_last_event_uses_most_recent_history_entry() -> None:
    village = _village()
    village.event_history = [
        HistoricalEvent(event_id="old", name="Flood", date=NOW - timedelta(days=30)),
        HistoricalEvent(event_id="new", name="Fire", date=NOW - timedelta(days=3, hours=12)),
    ]
    assert compute_derived_stats(village, now=NOW).days_since_last_major_event == 3


def test_water_shortage_alert() -> None:
    village = _village()
    village.resources.resources = {"water": ResourceStock(current=8, maximum=100)}
    village.resources.daily_consumption = {"water": 2}

    alerts = compute_resource_alerts(village)

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.resource == "water"
    assert alert.type == "shortage"
    assert alert.severity == "high"
    assert alert.estimated_time_to_impact == 4
    assert alert.recommended_actions == [
        "Increase water production",
        "Trade for water",
        "Reduce water consumption",
    ]


def test_critical_shortage_and_surplus_alerts() -> None:
    village = _village()
    village.resources.resources = {
        "food": ResourceStock(current=4, maximum=100),
        "stone": ResourceStock(current=96, maximum=100),
        "iron": ResourceStock(current=50, maximum=100),
        "silk": ResourceStock(current=0, maximum=0),
    }

    alerts = {a.resource: a for a in compute_resource_alerts(village)}

    assert set(alerts) == {"food", "stone"}
    assert alerts["food"].severity == "critical"
    # Missing consumption counts as 1 per day.
    assert alerts["food"].estimated_time_to_impact == 4
    assert alerts["stone"].type == "surplus"
    assert alerts["stone"].severity == "medium"
    assert alerts["stone"].estimated_time_to_impact == -1


def test_starting_resources_scale_with_size_and_climate() -> None:
    hamlet = starting_resources(size=VillageSize.hamlet, climate=ClimateType.temperate, population=50)
    city_arid = starting_resources(size=VillageSize.city, climate=ClimateType.arid, population=50)

    assert hamlet["food"] == 150
    assert hamlet["water"] == 100
    assert hamlet["gold"] == 500
    assert city_arid["food"] == 420
    assert city_arid["water"] == 600
    assert city_arid["wood"] == 240
    assert city_arid["stone"] == 200


def _stocked_village(stocks, production=None, consumption=None):  # type: ignore[no-untyped-def]
    village = _village()
    village.resources.resources = stocks
    village.resources.daily_production = production or {}
    village.resources.daily_consumption = consumption or {}
    return village


def test_resource_analytics() -> None:
    village = _stocked_village(
        {
            "food": ResourceStock(current=10, maximum=100, quality=90),
            "wood": ResourceStock(current=50, maximum=100, quality=30),
        },
        production={"food": 5, "wood": 0},
        consumption={"food": 15},
    )
    village.resources.total_capacity = 200
    village.resources.used_capacity = 60

    analytics = compute_resource_analytics(village)

    assert analytics.total_resources == 60
    assert analytics.storage_utilization == 30
    assert analytics.production_efficiency == 50
    assert analytics.resource_balance["food"].status == "deficit"
    assert analytics.resource_balance["food"].flow == -10
    assert analytics.resource_balance["food"].days_until_empty == 1
    assert analytics.resource_balance["wood"].status == "balanced"
    assert analytics.resource_balance["wood"].days_until_empty == -1
    assert [(c.resource, c.percentage, c.quality) for c in analytics.critical_resources] == [("food", 10, 90)]
    assert analytics.quality_distribution == {"excellent": 1, "poor": 1}


def test_resource_analytics_with_nothing_produced_or_stored() -> None:
    village = _stocked_village({})
    village.resources.total_capacity = 0

    analytics = compute_resource_analytics(village)

    assert analytics.storage_utilization == 0
    assert analytics.production_efficiency == 0
    assert analytics.resource_balance == {}
    assert analytics.critical_resources == []


def test_week_projection_statuses() -> None:
    village = _stocked_village(
        {"food": ResourceStock(current=100, maximum=200), "stone": ResourceStock(current=40, maximum=100)},
        consumption={"food": 15, "stone": 0},
    )

    projections = project_resources(village)

    food = projections["food"]
    assert [p.day for p in food] == [1, 2, 3, 4, 5, 6, 7]
    assert [p.amount for p in food] == [85, 70, 55, 40, 25, 10, 0]
    assert [p.status for p in food] == ["stable", "stable", "stable", "low", "low", "critical", "depleted"]
    assert {p.status for p in projections["stone"]} == {"stable"}
    assert village.resources.resources["food"].current == 100


def test_storage_alerts_are_sorted_by_severity() -> None:
    village = _stocked_village(
        {
            "water": ResourceStock(current=4, maximum=100),
            "wood": ResourceStock(current=50, maximum=100, quality=30),
            "stone": ResourceStock(current=99, maximum=100),
            "meat": ResourceStock(current=90, maximum=100, quality=10, spoilage_rate=0.1),
        },
        consumption={"water": 2, "meat": 20},
    )

    alerts = compute_storage_alerts(village)

    assert [(a.resource, a.type, a.severity) for a in alerts] == [
        ("water", "shortage", "critical"),
        ("meat", "quality_drop", "high"),
        ("meat", "spoilage", "high"),
        ("wood", "quality_drop", "medium"),
        ("stone", "surplus", "low"),
    ]
    assert alerts[0].estimated_time_to_impact == 2
    assert alerts[0].recommended_actions[0] == "Increase water production"
    assert alerts[2].estimated_time_to_impact == 10


def test_storage_alert_low_stock_band_without_consumption() -> None:
    village = _stocked_village({"iron": ResourceStock(current=15, maximum=100)})

    (alert,) = compute_storage_alerts(village)

    assert alert.severity == "medium"
    assert alert.estimated_time_to_impact == -1
