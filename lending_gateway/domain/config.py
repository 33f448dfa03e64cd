"""Immutable engine configuration injected into every calculation"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Tuple


@dataclass(frozen=True)
class EngineConfig:
    """Business constants for fees, extensions and credit-limit progression"""

    gst_rate: Decimal = Decimal("0.18")
    extension_fee_rate: Decimal = Decimal("0.21")  # of principal

    max_extensions: int = 4
    extension_window_before_days: int = 5  # D-5
    extension_window_after_days: int = 15  # D+15
    fixed_extension_days: int = 15

    default_repayment_days: int = 15

    # Percent of salary per number of multi-EMI loans already disbursed
    credit_limit_tiers: Tuple[Decimal, ...] = (
        Decimal("8"),
        Decimal("11"),
        Decimal("15.2"),
        Decimal("20.9"),
        Decimal("28"),
        Decimal("32.1"),
    )
    credit_limit_cap: Decimal = Decimal("45600")
    premium_credit_limit: Decimal = Decimal("150000")
    premium_tenure_emis: int = 24

    @property
    def premium_tier(self) -> Decimal:
        return self.credit_limit_tiers[-1]


DEFAULT_ENGINE_CONFIG = EngineConfig()
