"""Decision and reason types returned by guards."""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional


class Mode(str, Enum):
    LIVE = "LIVE"
    DRY_RUN = "DRY_RUN"


class Conclusion(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"
    ERROR = "ERROR"


class Reason:
    """Base for decision reasons."""

    type: ClassVar[str] = "UNKNOWN"

    def is_rate_limit(self) -> bool:
        return self.type == "RATE_LIMIT"

    def is_bot(self) -> bool:
        return self.type == "BOT"

    def is_shield(self) -> bool:
        return self.type == "SHIELD"

    def is_error(self) -> bool:
        return self.type == "ERROR"


@dataclass
class RateLimitReason(Reason):
    type: ClassVar[str] = "RATE_LIMIT"

    max: int
    remaining: int
    reset: int  # seconds until the next refill
    window: int  # refill interval in seconds


@dataclass
class BotReason(Reason):
    type: ClassVar[str] = "BOT"

    bot_name: Optional[str] = None
    categories: list[str] = field(default_factory=list)


@dataclass
class ShieldReason(Reason):
    type: ClassVar[str] = "SHIELD"

    threat: Optional[str] = None
    location: Optional[str] = None


@dataclass
class ErrorReason(Reason):
    type: ClassVar[str] = "ERROR"

    message: str = ""


@dataclass
class RuleResult:
    rule: str
    mode: Mode
    conclusion: Conclusion
    reason: Optional[Reason] = None


@dataclass
class Decision:
    """Outcome of one guard evaluation.

    `reason` is the reason of the rule that denied, or None when every
    rule allowed. DRY_RUN denials show up in `results` only.
    """

    conclusion: Conclusion
    reason: Optional[Reason] = None
    results: list[RuleResult] = field(default_factory=list)
    ip: Optional[str] = None

    def is_denied(self) -> bool:
        return self.conclusion == Conclusion.DENY

    def is_allowed(self) -> bool:
        return self.conclusion != Conclusion.DENY

    def is_errored(self) -> bool:
        return self.conclusion == Conclusion.ERROR
