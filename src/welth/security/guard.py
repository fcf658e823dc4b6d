"""Guards: run rules, produce one Decision.

Learn: Rules run in order. The first LIVE denial wins and stops the
evaluation. DRY_RUN denials are logged and recorded but never block.
A rule that raises (e.g. Redis went away) is logged as an ERROR result
and the guard fails open, like the rate limiter always has.
"""

from typing import Optional

import structlog

from welth.config import Settings
from welth.security.decision import (
    Conclusion,
    Decision,
    ErrorReason,
    Mode,
    RuleResult,
)
from welth.security.ratelimit import MemoryTokenBucketStore, TokenBucketStore
from welth.security.request import RequestDetails
from welth.security.rules import DetectBot, Rule, Shield, TokenBucket

logger = structlog.get_logger()


class Guard:
    """A fixed list of rules evaluated per request."""

    def __init__(self, rules: list[Rule]):
        self.rules = list(rules)

    async def protect(
        self,
        details: RequestDetails,
        *,
        characteristics: Optional[dict[str, str]] = None,
        requested: int = 1,
    ) -> Decision:
        characteristics = characteristics or {}
        results: list[RuleResult] = []
        errored = False

        for rule in self.rules:
            try:
                result = await rule.evaluate(details, characteristics, requested)
            except Exception as e:
                logger.warning("welth.guard.rule_error", rule=rule.name, error=str(e))
                errored = True
                results.append(
                    RuleResult(
                        rule=rule.name,
                        mode=rule.mode,
                        conclusion=Conclusion.ERROR,
                        reason=ErrorReason(message=str(e)),
                    )
                )
                continue

            results.append(result)
            if result.conclusion != Conclusion.DENY:
                continue

            if rule.mode == Mode.DRY_RUN:
                logger.info(
                    "welth.guard.dry_run_deny",
                    rule=rule.name,
                    reason=result.reason.type if result.reason else None,
                    ip=details.ip,
                    path=details.path,
                )
                continue

            return Decision(
                conclusion=Conclusion.DENY,
                reason=result.reason,
                results=results,
                ip=details.ip,
            )

        return Decision(
            conclusion=Conclusion.ERROR if errored else Conclusion.ALLOW,
            results=results,
            ip=details.ip,
        )


def build_edge_guard(settings: Settings) -> Guard:
    """Shield + bot detection, applied to every request by middleware."""
    return Guard([
        Shield(mode=settings.shield_mode),
        DetectBot(mode=settings.bot_mode, allow=settings.bot_allow),
    ])


def build_action_guard(
    settings: Settings, store: Optional[TokenBucketStore] = None
) -> Guard:
    """Per-user token bucket used by write actions."""
    return Guard([
        TokenBucket(
            store or MemoryTokenBucketStore(),
            characteristics=("user_id",),
            capacity=settings.rate_limit_capacity,
            refill_rate=settings.rate_limit_refill_rate,
            interval=settings.rate_limit_interval,
        ),
    ])
