"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state; nothing is shared between
users. State tracks ids returned by the API so follow-up requests can
reference them.
"""

from dataclasses import dataclass, field


@dataclass
class ShopperState:
    """Tracks state for a single simulated shopper."""

    headers: dict = field(default_factory=dict)
    item_ids: list[str] = field(default_factory=list)
    order_id: str | None = None
    order_status: str | None = None
    gate_state: str | None = None
