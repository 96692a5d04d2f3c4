import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from observability import now_ms
from rpc.registry import ToolRegistry

OBJECTIVES = ["minRisk", "maxSharpe", "riskParity"]
VAR_METHODS = ["historical", "monteCarlo", "parametric"]

# Placeholder reference prices and daily volatilities.
PRICES: Dict[str, float] = {"BTC": 67850, "ETH": 3247, "USDT": 1, "SOL": 142, "LINK": 14.67, "MATIC": 0.82}
VOLATILITIES: Dict[str, float] = {"BTC": 0.048, "ETH": 0.062, "USDT": 0.001, "SOL": 0.078, "LINK": 0.068, "MATIC": 0.082}

TARGET_WEIGHTS: Dict[str, Dict[str, float]] = {
    "minRisk": {"BTC": 45, "ETH": 25, "USDT": 15, "SOL": 5, "LINK": 5, "MATIC": 5},
    "maxSharpe": {"BTC": 35, "ETH": 30, "USDT": 5, "SOL": 15, "LINK": 10, "MATIC": 5},
    "riskParity": {"BTC": 20, "ETH": 20, "USDT": 30, "SOL": 10, "LINK": 10, "MATIC": 10},
}

# (var95, var99, cvar95) as a fraction of portfolio value per sqrt(day)
VAR_FACTORS: Dict[str, tuple] = {
    "historical": (0.058, 0.082, 0.072),
    "monteCarlo": (0.062, 0.088, 0.078),
    "parametric": (0.056, 0.078, 0.068),
}

SCENARIO_IMPACTS: Dict[str, Dict[str, float]] = {
    "market_crash_30pct": {"BTC": -0.3, "ETH": -0.35, "USDT": 0, "SOL": -0.42, "LINK": -0.38, "MATIC": -0.44},
    "march_2020": {"BTC": -0.48, "ETH": -0.55, "USDT": 0.01, "SOL": -0.6, "LINK": -0.58, "MATIC": -0.65},
    "may_2021": {"BTC": -0.42, "ETH": -0.38, "USDT": 0, "SOL": -0.45, "LINK": -0.48, "MATIC": -0.52},
    "interest_rate_hike": {"BTC": -0.12, "ETH": -0.15, "USDT": -0.01, "SOL": -0.18, "LINK": -0.16, "MATIC": -0.2},
    "regulatory_crackdown": {"BTC": -0.25, "ETH": -0.22, "USDT": -0.05, "SOL": -0.3, "LINK": -0.28, "MATIC": -0.35},
}
DEFAULT_SCENARIO_IMPACT = -0.3

TAX_EFFICIENCY: Dict[str, float] = {"BTC": 0.8, "ETH": 0.9, "SOL": 0.6, "LINK": 0.75, "MATIC": 0.85}


def _pct(part: float, whole: float) -> float:
    return (part / whole) * 100 if whole else 0.0


def _portfolio_schema(description: str) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "assets": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "symbol": {"type": "string"},
                        "amount": {"type": "number"},
                        "currentValue": {"type": "number"},
                    },
                },
            },
            "totalValue": {"type": "number"},
        },
        "description": description,
    }


def register_portfolio_tools(registry: ToolRegistry) -> None:

    @registry.tool(
        parameters={
            "type": "object",
            "required": ["assets", "objective"],
            "properties": {
                "assets": {
                    "type": "array",
                    "items": {"type": "object", "properties": {"symbol": {"type": "string"}, "weight": {"type": "number"}}},
                    "description": "Assets to include in portfolio",
                },
                "constraints": {
                    "type": "array",
                    "items": {"type": "object", "properties": {"type": {"type": "string"}, "value": {"type": "number"}}},
                    "description": "Optimization constraints",
                },
                "objective": {"type": "string", "enum": OBJECTIVES, "description": "Optimization objective"},
                "rebalanceFrequency": {"type": "string", "description": "How often to rebalance the portfolio"},
            },
        }
    )
    def optimize_portfolio(
        assets: List[Dict[str, Any]],
        objective: str,
        constraints: Optional[List[Dict[str, Any]]] = None,
        rebalance_frequency: str = "monthly",
    ) -> Dict[str, Any]:
        """Optimize cryptocurrency portfolio using Modern Portfolio Theory"""
        if objective not in TARGET_WEIGHTS:
            raise ValueError(f"Unsupported objective: {objective!r} (expected one of: {', '.join(OBJECTIVES)})")
        total_weight = sum(float(a["weight"]) for a in assets)
        if total_weight <= 0:
            raise ValueError("Asset weights must sum to a positive value")

        current = {a["symbol"]: _pct(float(a["weight"]), total_weight) for a in assets}
        targets = TARGET_WEIGHTS[objective]
        next_rebalance = (datetime.now(timezone.utc) + timedelta(days=30)).date().isoformat()
        return {
            "objective": objective,
            "constraints": constraints or [],
            "current_allocation": [{"symbol": s, "current_weight": w} for s, w in current.items()],
            "optimized_allocation": [
                {"symbol": s, "optimized_weight": w, "change_from_current": w - current.get(s, 0.0)}
                for s, w in targets.items()
            ],
            "expected_performance": {
                "annualized_return": 32.4,
                "annualized_volatility": 28.5,
                "sharpe_ratio": 1.14,
                "max_drawdown": -25.8,
            },
            "rebalancing_plan": {
                "frequency": rebalance_frequency,
                "next_rebalance": next_rebalance,
                "drift_threshold": 5,
            },
        }

    @registry.tool(
        parameters={
            "type": "object",
            "required": ["portfolio", "confidence"],
            "properties": {
                "portfolio": _portfolio_schema("Portfolio composition"),
                "confidence": {"type": "number", "description": "Confidence level (0-1)"},
                "horizon": {"type": "number", "description": "Time horizon in days"},
                "method": {"type": "string", "enum": VAR_METHODS, "description": "VaR calculation method"},
            },
        }
    )
    def calculate_var(
        portfolio: Dict[str, Any],
        confidence: float = 0.95,
        horizon: float = 1,
        method: str = "historical",
    ) -> Dict[str, Any]:
        """Calculate Value at Risk for a cryptocurrency portfolio"""
        assets = portfolio["assets"]
        values = {a["symbol"]: float(a["amount"]) * PRICES.get(a["symbol"], 0) for a in assets}
        total = sum(values.values())
        f95, f99, fc95 = VAR_FACTORS.get(method, VAR_FACTORS["parametric"])
        scale = math.sqrt(horizon)
        var95, var99, cvar95 = total * f95 * scale, total * f99 * scale, total * fc95 * scale
        return {
            "portfolio_value": total,
            "risk_metrics": {
                "value_at_risk": {
                    "confidence_95": var95,
                    "confidence_99": var99,
                    "as_percent_of_portfolio_95": _pct(var95, total),
                    "as_percent_of_portfolio_99": _pct(var99, total),
                },
                "conditional_var": {"confidence_95": cvar95, "as_percent_of_portfolio": _pct(cvar95, total)},
                "stress_test": {
                    "market_crash_30_percent": total * 0.3,
                    "march_2020_scenario": total * 0.42,
                    "may_2021_scenario": total * 0.38,
                },
            },
            "risk_contribution_by_asset": [
                {
                    "symbol": sym,
                    "value": value,
                    "percent_of_portfolio": _pct(value, total),
                    "risk_contribution": value * VOLATILITIES.get(sym, 0) * scale,
                    "percent_of_risk": _pct(value * VOLATILITIES.get(sym, 0), total * 0.058),
                }
                for sym, value in values.items()
            ],
            "methodology": {
                "method": method,
                "confidence_level": f"{confidence * 100:g}%",
                "time_horizon": f"{horizon:g} day(s)",
                "data_used": "2 years of historical data",
            },
        }

    @registry.tool(
        parameters={
            "type": "object",
            "required": ["currentPortfolio", "targetWeights"],
            "properties": {
                "currentPortfolio": _portfolio_schema("Current portfolio composition"),
                "targetWeights": {
                    "type": "object",
                    "additionalProperties": {"type": "number"},
                    "description": "Target portfolio weights",
                },
                "threshold": {"type": "number", "description": "Minimum threshold for rebalancing (percentage)"},
                "taxOptimization": {"type": "boolean", "description": "Whether to optimize for taxes"},
            },
        }
    )
    def rebalance_portfolio(
        current_portfolio: Dict[str, Any],
        target_weights: Dict[str, float],
        threshold: float = 5,
        tax_optimization: bool = False,
    ) -> Dict[str, Any]:
        """Generate rebalancing orders for a cryptocurrency portfolio"""
        assets = current_portfolio["assets"]
        total = current_portfolio.get("totalValue") or sum(float(a["currentValue"]) for a in assets)
        if not total:
            raise ValueError("Portfolio total value must be positive")
        current = {a["symbol"]: _pct(float(a["currentValue"]), total) for a in assets}

        orders: List[Dict[str, Any]] = []
        for symbol, target in target_weights.items():
            have = current.get(symbol, 0.0)
            diff = target - have
            if abs(diff) >= threshold:
                orders.append(
                    {
                        "symbol": symbol,
                        "action": "BUY" if diff > 0 else "SELL",
                        "value_change": abs(diff) / 100 * total,
                        "percentage_change": abs(diff),
                        "from_weight": have,
                        "to_weight": target,
                    }
                )
        for a in assets:
            if a["symbol"] not in target_weights:
                orders.append(
                    {
                        "symbol": a["symbol"],
                        "action": "SELL",
                        "value_change": float(a["currentValue"]),
                        "percentage_change": current[a["symbol"]],
                        "from_weight": current[a["symbol"]],
                        "to_weight": 0,
                    }
                )

        tax: Any = "Tax optimization not enabled"
        if tax_optimization:
            # Most tax-efficient sells first; buys keep their relative order.
            sells = sorted((o for o in orders if o["action"] == "SELL"), key=lambda o: -TAX_EFFICIENCY.get(o["symbol"], 0.5))
            orders = sells + [o for o in orders if o["action"] != "SELL"]
            tax = {
                "estimated_taxable_gains": sum(o["value_change"] * 0.15 for o in sells),
                "tax_loss_harvesting": "Optimized sell orders to minimize tax impact",
            }

        return {
            "rebalancing_orders": orders,
            "current_portfolio_weights": current,
            "target_portfolio_weights": target_weights,
            "total_rebalancing_value": sum(o["value_change"] for o in orders),
            "estimated_trading_costs": sum(o["value_change"] * 0.001 for o in orders),
            "tax_implications": tax,
        }

    @registry.tool(
        parameters={
            "type": "object",
            "required": ["portfolio", "scenarios"],
            "properties": {
                "portfolio": _portfolio_schema("Portfolio composition"),
                "scenarios": {
                    "type": "array",
                    "items": {"type": "string", "enum": [*SCENARIO_IMPACTS, "custom"]},
                    "description": "Stress scenarios to simulate",
                },
                "customScenario": {
                    "type": "object",
                    "description": 'Custom scenario definition (if scenarios includes "custom")',
                },
            },
        }
    )
    def run_stress_test(
        portfolio: Dict[str, Any],
        scenarios: List[str],
        custom_scenario: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Simulate portfolio performance under stress scenarios"""
        assets = portfolio["assets"]
        total_before = sum(float(a["currentValue"]) for a in assets)

        results = []
        for scenario in scenarios:
            if scenario == "custom":
                if not custom_scenario:
                    raise ValueError("customScenario is required when scenarios includes 'custom'")
                factors = custom_scenario.get("impactFactors") or {}
            elif scenario in SCENARIO_IMPACTS:
                factors = SCENARIO_IMPACTS[scenario]
            else:
                raise ValueError(f"Unknown scenario: {scenario!r}")

            impacts = []
            for a in assets:
                factor = factors.get(a["symbol"], DEFAULT_SCENARIO_IMPACT)
                impacts.append(
                    {
                        "symbol": a["symbol"],
                        "current_value": a["currentValue"],
                        "impact_percentage": factor * 100,
                        "value_impact": float(a["currentValue"]) * factor,
                    }
                )
            total_impact = sum(i["value_impact"] for i in impacts)
            results.append(
                {
                    "scenario": scenario,
                    "description": scenario.replace("_", " ").upper(),
                    "portfolio_value_before": total_before,
                    "portfolio_value_after": total_before + total_impact,
                    "portfolio_impact_percentage": _pct(total_impact, total_before),
                    "asset_impacts": impacts,
                }
            )

        return {
            "stress_test_results": results,
            "timestamp": now_ms(),
            "recommendations": {
                "portfolio_adjustments": [
                    "Increase USDT allocation by 5-10% for market crash protection",
                    "Set up trailing stops at -20% for high-volatility assets",
                ],
                "risk_mitigation_strategies": [
                    "Implement dollar-cost averaging during downturns",
                    "Diversify across market cap segments",
                ],
            },
        }
