"""
Runtime configuration loaded from the environment
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional

from dotenv import load_dotenv

load_dotenv()


class QuorumMode(str, Enum):
    ABSOLUTE = "absolute"  # quorum is a vote count
    PERCENTAGE = "percentage"  # quorum is a percentage of eligible voters


# Per-tier claim ceilings in cents
DEFAULT_TIER_CEILINGS = {
    "BASIC": 50000,
    "PREMIUM": 100000,
    "VALIDATOR": 100000,
    "FOUNDER": 150000,
}


@dataclass
class WorkflowSettings:
    """Settings for the claim workflow and the API around it."""

    database_url: str = "sqlite+aiosqlite:///./safetynet.db"
    environment: str = "production"
    log_level: str = "INFO"
    log_file: Optional[str] = None
    eligibility_required_days: int = 60
    risk_flag_threshold: int = 70
    risk_scorer: str = "amount"  # amount | behavioural
    quorum_mode: QuorumMode = QuorumMode.ABSOLUTE
    quorum: Decimal = Decimal("3")
    pass_threshold: Decimal = Decimal("60")
    tier_ceilings: Dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_TIER_CEILINGS)
    )

    @property
    def echo_sql(self) -> bool:
        return self.environment == "development"

    def claim_ceiling(self, tier: str) -> int:
        return self.tier_ceilings.get(tier, self.tier_ceilings["BASIC"])

    @classmethod
    def from_env(cls) -> "WorkflowSettings":
        """
        Build settings from environment variables, falling back to defaults.

        Recognised variables: DATABASE_URL, ENVIRONMENT, LOG_LEVEL, LOG_FILE,
        ELIGIBILITY_REQUIRED_DAYS, RISK_FLAG_THRESHOLD, RISK_SCORER, VOTING_QUORUM_MODE,
        VOTING_QUORUM, VOTING_PASS_THRESHOLD.
        """
        defaults = cls()
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            environment=os.getenv("ENVIRONMENT", defaults.environment),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
            log_file=os.getenv("LOG_FILE") or None,
            eligibility_required_days=int(
                os.getenv(
                    "ELIGIBILITY_REQUIRED_DAYS", defaults.eligibility_required_days
                )
            ),
            risk_flag_threshold=int(
                os.getenv("RISK_FLAG_THRESHOLD", defaults.risk_flag_threshold)
            ),
            risk_scorer=os.getenv("RISK_SCORER", defaults.risk_scorer),
            quorum_mode=QuorumMode(
                os.getenv("VOTING_QUORUM_MODE", defaults.quorum_mode.value).lower()
            ),
            quorum=Decimal(os.getenv("VOTING_QUORUM", str(defaults.quorum))),
            pass_threshold=Decimal(
                os.getenv("VOTING_PASS_THRESHOLD", str(defaults.pass_threshold))
            ),
        )
