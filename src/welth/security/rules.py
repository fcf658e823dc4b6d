"""Guard rules.

Learn: A rule looks at one request and returns a RuleResult. Rules
don't decide what a DRY_RUN denial means; the guard does.
"""

from abc import ABC, abstractmethod
from typing import Optional

from welth.security import bots, shield
from welth.security.decision import (
    BotReason,
    Conclusion,
    Mode,
    RateLimitReason,
    RuleResult,
    ShieldReason,
)
from welth.security.ratelimit import TokenBucketStore
from welth.security.request import RequestDetails


class Rule(ABC):
    name = "rule"

    def __init__(self, mode: Mode | str = Mode.LIVE):
        self.mode = Mode(mode)

    @abstractmethod
    async def evaluate(
        self,
        details: RequestDetails,
        characteristics: dict[str, str],
        requested: int,
    ) -> RuleResult:
        """Judge one request; raising counts as an ERROR result."""

    def _result(self, conclusion: Conclusion, reason=None) -> RuleResult:
        return RuleResult(
            rule=self.name, mode=self.mode, conclusion=conclusion, reason=reason
        )


class Shield(Rule):
    """Block requests carrying common attack payloads."""

    name = "shield"

    async def evaluate(self, details, characteristics, requested):
        hit = shield.scan(details)
        if hit is None:
            return self._result(Conclusion.ALLOW)
        threat, location = hit
        return self._result(
            Conclusion.DENY, ShieldReason(threat=threat, location=location)
        )


class DetectBot(Rule):
    """Block automated clients by User-Agent.

    With `allow`, every bot not listed is denied. With `deny`, only the
    listed bots are denied. Browsers are always allowed.
    """

    name = "detect_bot"

    def __init__(
        self,
        mode: Mode | str = Mode.LIVE,
        allow: Optional[list[str]] = None,
        deny: Optional[list[str]] = None,
    ):
        super().__init__(mode)
        if allow is not None and deny is not None:
            raise ValueError("detect_bot takes either allow or deny, not both")
        self.allow = list(allow) if allow is not None else None
        self.deny = list(deny) if deny is not None else None
        bots.validate_entries((self.allow or []) + (self.deny or []))

    async def evaluate(self, details, characteristics, requested):
        bot = bots.classify(details.user_agent)
        if bot is None:
            return self._result(Conclusion.ALLOW)

        if self.deny is not None:
            denied = any(bot.matches(entry) for entry in self.deny)
        else:
            denied = not any(bot.matches(entry) for entry in self.allow or [])

        reason = BotReason(bot_name=bot.name, categories=list(bot.categories))
        return self._result(Conclusion.DENY if denied else Conclusion.ALLOW, reason)


class TokenBucket(Rule):
    """Rate limit keyed by request characteristics (falls back to IP)."""

    name = "token_bucket"

    def __init__(
        self,
        store: TokenBucketStore,
        *,
        mode: Mode | str = Mode.LIVE,
        characteristics: tuple[str, ...] = ("ip",),
        capacity: int,
        refill_rate: int,
        interval: int,
    ):
        super().__init__(mode)
        if capacity < 1 or refill_rate < 1 or interval < 1:
            raise ValueError("token bucket capacity, refill_rate and interval must be positive")
        self.store = store
        self.characteristics = characteristics
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.interval = interval

    def bucket_key(self, details: RequestDetails, characteristics: dict[str, str]) -> str:
        values = []
        for name in self.characteristics:
            value = characteristics.get(name)
            if value is None and name == "ip":
                value = details.ip
            if value is None:
                # Missing characteristic, bucket by client IP instead
                return f"{self.name}:ip:{details.ip}"
            values.append(f"{name}={value}")
        return f"{self.name}:" + ":".join(values)

    async def evaluate(self, details, characteristics, requested):
        state = await self.store.take(
            self.bucket_key(details, characteristics),
            capacity=self.capacity,
            refill_rate=self.refill_rate,
            interval=self.interval,
            requested=requested,
        )
        reason = RateLimitReason(
            max=self.capacity,
            remaining=state.remaining,
            reset=state.reset,
            window=self.interval,
        )
        return self._result(
            Conclusion.ALLOW if state.allowed else Conclusion.DENY, reason
        )
