"""
File: counter_service/settings.py
Purpose: Environment-backed configuration for the counter service.
Key responsibilities:
- Parse host/port, logging and live-simulation defaults.
- Build the engine configuration (SMART weights, thresholds, tolerances).
"""

from dataclasses import dataclass
import os

from counter_service.sim.entities import EngineConfig, SmartWeights


def _int_env(name: str, default: int = 0) -> int:
    """Parse an integer env var with a fallback."""
    raw = os.getenv(name, "")
    if raw == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    """Counter service configuration parsed from environment."""
    host: str = os.getenv("COUNTER_HOST", "0.0.0.0")
    port: int = int(os.getenv("COUNTER_PORT", "8010"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    worker_count: int = _int_env("WORKER_COUNT", 3)
    arrival_rate: float = float(os.getenv("ARRIVAL_RATE", "1.4"))
    default_policy: str = os.getenv("DEFAULT_POLICY", "smart")
    seed: int = _int_env("COUNTER_SEED", 42)
    rush_min_orders: int = _int_env("RUSH_MIN_ORDERS", 5)
    rush_max_orders: int = _int_env("RUSH_MAX_ORDERS", 8)
    fairness_tolerance: int = _int_env("FAIRNESS_TOLERANCE", 3)
    metrics_window: int = _int_env("METRICS_WINDOW", 100)
    auto_tick_seconds: float = float(os.getenv("AUTO_TICK_SECONDS", "0"))
    urgent_after_minutes: int = _int_env("URGENT_AFTER_MINUTES", 8)
    elevated_after_minutes: int = _int_env("ELEVATED_AFTER_MINUTES", 4)
    smart_w_wait: float = float(os.getenv("SMART_W_WAIT", "0.40"))
    smart_w_tier: float = float(os.getenv("SMART_W_TIER", "0.25"))
    smart_w_short_job: float = float(os.getenv("SMART_W_SHORT_JOB", "0.10"))
    smart_w_fairness: float = float(os.getenv("SMART_W_FAIRNESS", "0.25"))


settings = Settings()


def engine_config(cfg: Settings = settings) -> EngineConfig:
    """Build the engine configuration from service settings."""
    return EngineConfig(
        worker_count=cfg.worker_count,
        arrival_rate=cfg.arrival_rate,
        default_policy=cfg.default_policy,
        seed=cfg.seed,
        rush_min_orders=cfg.rush_min_orders,
        rush_max_orders=cfg.rush_max_orders,
        fairness_tolerance=cfg.fairness_tolerance,
        metrics_window=cfg.metrics_window,
        urgent_after_minutes=cfg.urgent_after_minutes,
        elevated_after_minutes=cfg.elevated_after_minutes,
        weights=SmartWeights(
            wait=cfg.smart_w_wait,
            tier=cfg.smart_w_tier,
            short_job=cfg.smart_w_short_job,
            fairness=cfg.smart_w_fairness,
        ),
    )
