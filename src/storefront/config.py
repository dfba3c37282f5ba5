"""Runtime settings for the storefront, read from the environment."""

import os
from dataclasses import dataclass
from enum import Enum


class DeliveryFeePolicy(Enum):
    """Which rules may zero the delivery fee."""

    BOTH = "both"
    THRESHOLD_ONLY = "threshold_only"
    ENGAGEMENT_ONLY = "engagement_only"


def _env_float(name: str, default: float | None) -> float | None:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    if value.lower() in ("none", "off"):
        return None
    return float(value)


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class StorefrontSettings:
    delivery_fee: float = 5.99
    free_delivery_threshold: float | None = 50.0
    delivery_fee_policy: DeliveryFeePolicy = DeliveryFeePolicy.BOTH
    engagement_duration: float = 10.0
    engagement_tick_interval: float = 0.1
    auto_complete_after: float = 30.0
    test_card_prefix: str = "4242"
    local_cache_dir: str | None = None
    mirror_remote_writes: bool = False
    remote_store: str = "fake"
    mongo_uri: str | None = None
    mongo_db_name: str | None = None

    @property
    def threshold_waiver_enabled(self) -> bool:
        return self.free_delivery_threshold is not None and self.delivery_fee_policy in (
            DeliveryFeePolicy.BOTH,
            DeliveryFeePolicy.THRESHOLD_ONLY,
        )

    @property
    def engagement_waiver_enabled(self) -> bool:
        return self.delivery_fee_policy in (DeliveryFeePolicy.BOTH, DeliveryFeePolicy.ENGAGEMENT_ONLY)

    @classmethod
    def from_env(cls) -> "StorefrontSettings":
        return cls(
            delivery_fee=_env_float("DELIVERY_FEE", 5.99),
            free_delivery_threshold=_env_float("FREE_DELIVERY_THRESHOLD", 50.0),
            delivery_fee_policy=DeliveryFeePolicy(os.environ.get("DELIVERY_FEE_POLICY", "both")),
            engagement_duration=_env_float("ENGAGEMENT_DURATION", 10.0),
            engagement_tick_interval=_env_float("ENGAGEMENT_TICK_INTERVAL", 0.1),
            auto_complete_after=_env_float("AUTO_COMPLETE_AFTER", 30.0),
            test_card_prefix=os.environ.get("TEST_CARD_PREFIX", "4242"),
            local_cache_dir=os.environ.get("LOCAL_CACHE_DIR") or None,
            mirror_remote_writes=_env_bool("MIRROR_REMOTE_WRITES", False),
            remote_store=os.environ.get("REMOTE_STORE", "fake"),
            mongo_uri=os.environ.get("MONGO_URI"),
            mongo_db_name=os.environ.get("MONGO_DB_NAME"),
        )
