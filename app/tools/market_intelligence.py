import random
from typing import Any, Dict, List, Optional

from observability import now_ms
from rpc.registry import ToolRegistry

DEFAULT_EXCHANGES = ["binance", "coinbase", "kraken"]


def _symbol_schema() -> Dict[str, Any]:
    return {"type": "string", "description": 'Trading pair symbol (e.g., "BTC/USDT")'}


def register_market_intelligence_tools(registry: ToolRegistry) -> None:

    @registry.tool(
        parameters={
            "type": "object",
            "required": ["symbol"],
            "properties": {
                "symbol": _symbol_schema(),
                "exchanges": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "List of exchanges to include (default: top exchanges by volume)",
                },
                "depth": {"type": "number", "description": "Depth of order book to fetch (default: 10)"},
            },
        }
    )
    def get_aggregated_order_book(symbol: str, exchanges: Optional[List[str]] = None, depth: int = 10) -> Dict[str, Any]:
        """Aggregate order book data across multiple exchanges"""
        bids = [
            [67850.23, 1.5, "binance"],
            [67849.95, 0.8, "coinbase"],
            [67848.50, 2.1, "kraken"],
            [67845.75, 1.2, "binance"],
            [67844.90, 0.5, "coinbase"],
        ]
        asks = [
            [67855.40, 0.9, "binance"],
            [67856.20, 1.3, "coinbase"],
            [67857.50, 0.7, "kraken"],
            [67858.10, 1.8, "binance"],
            [67860.25, 2.4, "coinbase"],
        ]
        return {
            "symbol": symbol,
            "timestamp": now_ms(),
            "exchanges": list(exchanges) if exchanges else list(DEFAULT_EXCHANGES),
            "depth": depth,
            "bids": bids[: max(0, int(depth))],
            "asks": asks[: max(0, int(depth))],
            "aggregated_liquidity": {"bids": 412000, "asks": 487000},
        }

    @registry.tool(
        parameters={
            "type": "object",
            "required": ["symbols"],
            "properties": {
                "symbols": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "List of trading pair symbols to check",
                },
                "minSpread": {"type": "number", "description": "Minimum spread percentage to consider (default: 0.5)"},
                "includesFees": {
                    "type": "boolean",
                    "description": "Whether to include exchange fees in calculations (default: true)",
                },
            },
        }
    )
    def get_arbitrage_opportunities(symbols: List[str], min_spread: float = 0.5, includes_fees: bool = True) -> Dict[str, Any]:
        """Detect arbitrage opportunities across exchanges"""
        opportunities = [
            {
                "symbol": "ETH/USDT",
                "buy_exchange": "Binance",
                "sell_exchange": "Coinbase",
                "buy_price": 3247.50,
                "sell_price": 3272.10,
                "spread_percentage": 0.76,
                "estimated_profit": 24.60,
                "volume_24h": {"buy_exchange": 1200000000, "sell_exchange": 890000000},
                "execution_time_ms": 45,
                "fees": {"buy": 3.25, "sell": 3.27, "total": 6.52},
                "net_profit_percentage": 0.56,
                "recommended_size": 25000,
                "risk_level": "LOW",
            },
            {
                "symbol": "LINK/USDT",
                "buy_exchange": "Kraken",
                "sell_exchange": "Binance",
                "buy_price": 14.25,
                "sell_price": 14.39,
                "spread_percentage": 0.98,
                "estimated_profit": 14.00,
                "volume_24h": {"buy_exchange": 450000000, "sell_exchange": 520000000},
                "execution_time_ms": 38,
                "fees": {"buy": 1.42, "sell": 1.44, "total": 2.86},
                "net_profit_percentage": 0.78,
                "recommended_size": 10000,
                "risk_level": "MEDIUM",
            },
        ]
        spread_key = "net_profit_percentage" if includes_fees else "spread_percentage"
        return {
            "opportunities": [o for o in opportunities if o[spread_key] >= min_spread],
            "symbols_requested": list(symbols),
            "timestamp": now_ms(),
            "market_status": "Active",
            "exchanges_monitored": ["Binance", "Coinbase", "Kraken", "KuCoin", "Bitfinex"],
        }

    @registry.tool(
        parameters={
            "type": "object",
            "required": ["symbol"],
            "properties": {
                "symbol": _symbol_schema(),
                "exchanges": {"type": "array", "items": {"type": "string"}, "description": "List of exchanges to include"},
                "volumeThreshold": {
                    "type": "number",
                    "description": "Minimum volume threshold in base currency (default: 1.0)",
                },
            },
        }
    )
    def analyze_liquidity(symbol: str, exchanges: Optional[List[str]] = None, volume_threshold: float = 1.0) -> Dict[str, Any]:
        """Analyze liquidity metrics for a trading pair across exchanges"""
        per_exchange = {
            "binance": {"volume_24h": 4800000000, "bid_ask_spread": 0.01, "depth_2pct": 38500000, "market_share": 50.8},
            "coinbase": {"volume_24h": 2100000000, "bid_ask_spread": 0.02, "depth_2pct": 21200000, "market_share": 22.2},
            "kraken": {"volume_24h": 950000000, "bid_ask_spread": 0.03, "depth_2pct": 11800000, "market_share": 10.1},
        }
        wanted = [e.lower() for e in (exchanges or DEFAULT_EXCHANGES)]
        return {
            "symbol": symbol,
            "timestamp": now_ms(),
            "volume_threshold": volume_threshold,
            "global_metrics": {
                "total_volume_24h": 9450000000,
                "average_slippage": {"10k": 0.04, "100k": 0.12, "1M": 0.38},
                "bid_ask_spread": 0.02,
                "volatility_24h": 2.4,
                "liquidity_score": 92,
            },
            "exchange_metrics": {e: per_exchange[e] for e in wanted if e in per_exchange},
            "recommendations": {
                "best_execution_venue": "binance",
                "optimal_order_size": "< 250k USD per order to keep slippage under 0.15%",
            },
        }

    @registry.tool(
        parameters={
            "type": "object",
            "required": ["symbol", "exchange"],
            "properties": {
                "symbol": _symbol_schema(),
                "exchange": {"type": "string", "description": "Exchange to analyze"},
                "levels": {"type": "number", "description": "Number of price levels to include (default: 20)"},
            },
        }
    )
    def get_market_depth(symbol: str, exchange: str, levels: int = 20) -> Dict[str, Any]:
        """Detailed order book and market microstructure analysis"""
        n = max(0, int(levels))
        # Placeholder sizes only; not cryptographic.
        bids = [[67850 - i * 5, round(random.uniform(0.5, 3.5), 4)] for i in range(n)]  # nosec B311
        asks = [[67855 + i * 5, round(random.uniform(0.5, 3.5), 4)] for i in range(n)]  # nosec B311
        return {
            "symbol": symbol,
            "exchange": exchange,
            "timestamp": now_ms(),
            "order_book": {"bids": bids, "asks": asks},
            "analysis": {
                "bid_ask_imbalance": 0.82,
                "market_pressure": "BULLISH",
                "large_orders": [
                    {"price": 67820, "volume": 12.5, "side": "BID"},
                    {"price": 67900, "volume": 8.2, "side": "ASK"},
                ],
                "price_walls": [
                    {"price": 67800, "volume": 45.8, "side": "BID"},
                    {"price": 68000, "volume": 62.3, "side": "ASK"},
                ],
            },
        }
