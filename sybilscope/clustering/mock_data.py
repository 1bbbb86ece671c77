"""
Random but plausible wallet records for demos and tests.
"""

from typing import Any, List, Optional

import numpy as np

from .models import WalletData


def mock_address(index: int) -> str:
    return f"0x{index:040x}"


def create_mock_wallet_data(address: str, rng: Optional[np.random.Generator] = None,
                            **overrides: Any) -> WalletData:
    """
    Generate one wallet record with typical retail-trader ranges.

    Args:
        address: Wallet address
        rng: Random generator (seed it for reproducible data)
        **overrides: Feature values to force, by snake_case name
    """
    rng = rng if rng is not None else np.random.default_rng()

    values = {
        "total_trades": float(rng.integers(0, 500)),
        "unique_markets": float(rng.integers(0, 50)),
        "trade_frequency_per_day": rng.random() * 10,
        "active_days_ratio": rng.random(),
        "avg_trade_size_usd": rng.random() * 10_000,
        "total_volume_usd": rng.random() * 500_000,
        "trade_size_variance": rng.random() * 100_000,
        "whale_trade_ratio": rng.random() * 0.3,
        "avg_time_between_trades_hours": rng.random() * 48,
        "off_hours_trading_ratio": rng.random() * 0.5,
        "pre_event_trading_ratio": rng.random() * 0.2,
        "timing_consistency_score": rng.random(),
        "market_concentration_score": rng.random(),
        "niche_market_ratio": rng.random() * 0.5,
        "political_market_ratio": rng.random() * 0.3,
        "category_diversity_score": rng.random(),
        "win_rate": rng.random(),
        "profit_factor": rng.random() * 5,
        "avg_holding_period_hours": rng.random() * 72,
        "max_consecutive_wins": float(rng.integers(0, 20)),
        "wallet_age_days": float(rng.integers(0, 365)),
        "coordination_score": rng.random() * 50,
        "sybil_risk_score": rng.random() * 50,
        "suspicion_score": rng.random() * 50,
    }
    values.update(overrides)

    return WalletData(address=address, **values)


def create_mock_wallet_data_batch(count: int, rng: Optional[np.random.Generator] = None) -> List[WalletData]:
    rng = rng if rng is not None else np.random.default_rng()
    return [create_mock_wallet_data(mock_address(i), rng) for i in range(count)]
