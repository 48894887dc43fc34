"""
Engine configuration.

Dataclass configs for each engine component, composed into EngineConfig.
Values can be loaded from YAML; anything missing falls back to defaults.

Usage:
    from src.config import load_config

    config = load_config("config/engine.yaml")
    config.rates.first_period_min  # 0.20
"""
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

CONFIG_ENV_VAR = "COMPOUNDSIM_CONFIG"
DATABASE_ENV_VAR = "COMPOUNDSIM_DATABASE_URL"

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "engine.yaml"


def _from_mapping(cls, data: Optional[Dict[str, Any]]):
    """Build a flat dataclass from a dict, ignoring unknown keys."""
    data = data or {}
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class RateConfig:
    """Tiered monthly return ranges."""
    first_period_min: float = 0.20
    first_period_max: float = 0.22
    standard_min: float = 0.15
    standard_max: float = 0.17
    period_count: int = 12


@dataclass
class VolatilityConfig:
    """Daily win/loss pattern bounds (fractions of balance)."""
    min_win_rate: float = 0.65
    max_win_rate: float = 0.75
    max_daily_gain: float = 0.03
    max_daily_loss: float = -0.015
    min_daily_move: float = 0.001
    max_redraws: int = 50
    tolerance: float = 0.01


@dataclass
class InstrumentWeight:
    """One tradeable symbol and its selection weight."""
    symbol: str
    name: str
    weight: float


DEFAULT_INSTRUMENTS = [
    InstrumentWeight("BTC", "Bitcoin", 0.25),
    InstrumentWeight("ETH", "Ethereum", 0.20),
    InstrumentWeight("ADA", "Cardano", 0.12),
    InstrumentWeight("SOL", "Solana", 0.12),
    InstrumentWeight("DOT", "Polkadot", 0.10),
    InstrumentWeight("LINK", "Chainlink", 0.08),
    InstrumentWeight("UNI", "Uniswap", 0.08),
    InstrumentWeight("AAVE", "Aave", 0.05),
]

# (capital floor, min trades, max trades), checked from the top down
DEFAULT_TRADE_COUNT_TIERS = [
    (100_000.0, 75, 100),
    (50_000.0, 50, 75),
    (15_000.0, 30, 50),
    (0.0, 20, 30),
]


@dataclass
class TradeConfig:
    """Intraday trade synthesis parameters."""
    winning_day_win_rate: Tuple[float, float] = (0.60, 0.75)
    losing_day_win_rate: Tuple[float, float] = (0.30, 0.40)
    size_variance: Tuple[float, float] = (0.3, 2.5)
    min_duration_minutes: int = 10
    max_duration_minutes: int = 240
    # Quarters of the session, overnight through evening
    cluster_weights: Tuple[float, ...] = (0.15, 0.30, 0.35, 0.20)
    zero_amount_epsilon: float = 0.005
    max_redraws: int = 50
    tolerance: float = 0.01
    instruments: List[InstrumentWeight] = field(default_factory=lambda: list(DEFAULT_INSTRUMENTS))
    trade_count_tiers: List[Tuple[float, int, int]] = field(
        default_factory=lambda: list(DEFAULT_TRADE_COUNT_TIERS)
    )

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "TradeConfig":
        """Create config from dictionary."""
        d = dict(d or {})
        config = cls()
        for key in ("winning_day_win_rate", "losing_day_win_rate", "size_variance", "cluster_weights"):
            if key in d:
                setattr(config, key, tuple(d[key]))
        for key in ("min_duration_minutes", "max_duration_minutes", "max_redraws"):
            if key in d:
                setattr(config, key, int(d[key]))
        for key in ("zero_amount_epsilon", "tolerance"):
            if key in d:
                setattr(config, key, float(d[key]))
        if "instruments" in d:
            config.instruments = [
                InstrumentWeight(i["symbol"], i.get("name", i["symbol"]), float(i["weight"]))
                for i in d["instruments"]
            ]
        if "trade_count_tiers" in d:
            config.trade_count_tiers = [
                (float(t["min_capital"]), int(t["min_trades"]), int(t["max_trades"]))
                for t in d["trade_count_tiers"]
            ]
            config.trade_count_tiers.sort(key=lambda t: t[0], reverse=True)
        return config


@dataclass
class PositionConfig:
    """Capital lock and position sizing."""
    target_utilization: float = 0.80
    min_position_pct: float = 0.008
    max_position_pct: float = 0.015
    min_lock_minutes: int = 20
    max_lock_minutes: int = 60
    tolerance: float = 0.01


@dataclass
class CalendarConfig:
    """Trading calendar and session window."""
    weekend_trading: bool = True
    holidays: List[str] = field(default_factory=list)
    session_open: str = "00:00"
    session_minutes: int = 24 * 60
    timezone: str = "UTC"


@dataclass
class SchedulerConfig:
    """Daily payout job timing."""
    payout_time: str = "00:01"
    timezone: str = "America/New_York"
    poll_seconds: float = 30.0


@dataclass
class EngineConfig:
    """Top-level configuration for the simulation engine."""
    rates: RateConfig = field(default_factory=RateConfig)
    volatility: VolatilityConfig = field(default_factory=VolatilityConfig)
    trades: TradeConfig = field(default_factory=TradeConfig)
    positions: PositionConfig = field(default_factory=PositionConfig)
    calendar: CalendarConfig = field(default_factory=CalendarConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    minimum_principal: float = 100.0
    database_url: Optional[str] = None
    seed: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "EngineConfig":
        """Create config from dictionary."""
        return cls(
            rates=_from_mapping(RateConfig, d.get("rates")),
            volatility=_from_mapping(VolatilityConfig, d.get("volatility")),
            trades=TradeConfig.from_dict(d.get("trades")),
            positions=_from_mapping(PositionConfig, d.get("positions")),
            calendar=_from_mapping(CalendarConfig, d.get("calendar")),
            scheduler=_from_mapping(SchedulerConfig, d.get("scheduler")),
            minimum_principal=float(d.get("minimum_principal", 100.0)),
            database_url=d.get("database_url"),
            seed=d.get("seed"),
        )


def load_config(path: Optional[str] = None) -> EngineConfig:
    """
    Load engine configuration from a YAML file.

    Resolution order: explicit path, COMPOUNDSIM_CONFIG, then
    config/engine.yaml. COMPOUNDSIM_DATABASE_URL overrides database_url.

    Args:
        path: Path to YAML configuration file

    Returns:
        EngineConfig instance
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)

    if path is None:
        config_path = DEFAULT_CONFIG_PATH
        if not config_path.exists():
            config = EngineConfig()
            config.database_url = os.environ.get(DATABASE_ENV_VAR, config.database_url)
            return config
    else:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    config = EngineConfig.from_dict(data)
    config.database_url = os.environ.get(DATABASE_ENV_VAR, config.database_url)
    return config
