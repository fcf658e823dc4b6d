"""Edge security unit tests: bots, shield, token buckets, guards."""

import pytest
from fakeredis import FakeAsyncRedis

from welth.security import bots, shield
from welth.security.decision import Conclusion, Mode
from welth.security.guard import Guard
from welth.security.ratelimit import (
    MemoryTokenBucketStore,
    RedisTokenBucketStore,
    take_tokens,
)
from welth.security.request import RequestDetails
from welth.security.rules import DetectBot, Rule, Shield, TokenBucket

CHROME = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


def _details(user_agent=CHROME, path="/", query="", ip="203.0.113.7") -> RequestDetails:
    headers = {"user-agent": user_agent} if user_agent is not None else {}
    return RequestDetails(ip=ip, path=path, query=query, headers=headers)


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


# ═══════════════════════════════════════════════════════════
# Bot classification
# ═══════════════════════════════════════════════════════════


def test_classify_browser_is_not_a_bot():
    assert bots.classify(CHROME) is None


def test_classify_missing_user_agent_is_unknown_bot():
    assert bots.classify(None).name == "UNKNOWN"
    assert bots.classify("   ").name == "UNKNOWN"


def test_classify_known_bots():
    assert bots.classify("Go-http-client/2.0").name == "GO_HTTP"
    assert bots.classify("curl/7.88.1").name == "CURL"
    google = bots.classify("Mozilla/5.0 (compatible; Googlebot/2.1)")
    assert google.name == "GOOGLE_CRAWLER"
    assert "SEARCH_ENGINE" in google.categories


def test_classify_generic_crawler_is_unknown():
    assert bots.classify("AcmeSpider/3.0 (+https://acme.test)").name == "UNKNOWN"


def test_bot_match_categories_and_names():
    google = bots.classify("Googlebot/2.1")
    assert google.matches("CATEGORY:SEARCH_ENGINE")
    assert google.matches("GOOGLE_CRAWLER")
    assert not google.matches("CATEGORY:AI")


def test_validate_entries_rejects_unknown():
    with pytest.raises(ValueError):
        bots.validate_entries(["CATEGORY:NOT_A_THING"])
    with pytest.raises(ValueError):
        bots.validate_entries(["NOT_A_BOT"])


# ═══════════════════════════════════════════════════════════
# Rules
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_detect_bot_allow_list():
    rule = DetectBot(allow=["CATEGORY:SEARCH_ENGINE", "GO_HTTP"])
    assert (await rule.evaluate(_details("Go-http-client/1.1"), {}, 1)).conclusion == Conclusion.ALLOW
    assert (await rule.evaluate(_details("bingbot/2.0"), {}, 1)).conclusion == Conclusion.ALLOW
    denied = await rule.evaluate(_details("curl/8.0"), {}, 1)
    assert denied.conclusion == Conclusion.DENY
    assert denied.reason.bot_name == "CURL"
    assert (await rule.evaluate(_details(), {}, 1)).conclusion == Conclusion.ALLOW


@pytest.mark.asyncio
async def test_detect_bot_deny_list():
    rule = DetectBot(deny=["CATEGORY:AI"])
    assert (await rule.evaluate(_details("GPTBot/1.0"), {}, 1)).conclusion == Conclusion.DENY
    assert (await rule.evaluate(_details("curl/8.0"), {}, 1)).conclusion == Conclusion.ALLOW


def test_detect_bot_rejects_allow_and_deny():
    with pytest.raises(ValueError):
        DetectBot(allow=["CURL"], deny=["GO_HTTP"])


@pytest.mark.parametrize("query,threat", [
    ("id=1%20UNION%20SELECT%20password%20FROM%20users", "SQL_INJECTION"),
    ("q=%3Cimg%20src%3Dx%20onerror%3Dalert(1)%3E", "XSS"),
    ("file=../../etc/passwd", "PATH_TRAVERSAL"),
    ("host=example.com%3B%20cat%20/etc/hosts", "COMMAND_INJECTION"),
])
def test_shield_scan_detects(query, threat):
    hit = shield.scan(_details(query=query))
    assert hit is not None
    assert hit[0] == threat
    assert hit[1] == "query"


def test_shield_scan_clean_request():
    assert shield.scan(_details(path="/api/accounts", query="page=2&id=7&q=o'neil")) is None


@pytest.mark.asyncio
async def test_shield_rule_reports_location():
    result = await Shield().evaluate(_details(user_agent="<script>x</script>"), {}, 1)
    assert result.conclusion == Conclusion.DENY
    assert result.reason.threat == "XSS"
    assert result.reason.location == "header:user-agent"


# ═══════════════════════════════════════════════════════════
# Token bucket
# ═══════════════════════════════════════════════════════════


def test_take_tokens_refills_whole_intervals_only():
    kw = dict(capacity=10, refill_rate=5, interval=60, requested=1)
    state, tokens, refilled_at = take_tokens(0, 1000, 1059, **kw)
    assert not state.allowed
    assert state.reset == 1

    state, tokens, refilled_at = take_tokens(0, 1000, 1061, **kw)
    assert state.allowed
    assert state.remaining == 4
    assert refilled_at == 1060


def test_take_tokens_caps_at_capacity():
    state, tokens, _ = take_tokens(
        3, 0, 10_000, capacity=10, refill_rate=5, interval=60, requested=1
    )
    assert state.remaining == 9


@pytest.mark.asyncio
async def test_memory_store_exhausts_and_refills():
    clock = FakeClock()
    store = MemoryTokenBucketStore(clock=clock)
    kw = dict(capacity=2, refill_rate=1, interval=60, requested=1)

    assert (await store.take("k", **kw)).remaining == 1
    assert (await store.take("k", **kw)).remaining == 0
    denied = await store.take("k", **kw)
    assert not denied.allowed
    assert denied.reset == 60

    clock.now += 60
    assert (await store.take("k", **kw)).allowed


@pytest.mark.asyncio
async def test_redis_store_exhausts_at_capacity():
    clock = FakeClock()
    store = RedisTokenBucketStore(FakeAsyncRedis(), clock=clock)
    kw = dict(capacity=3, refill_rate=3, interval=3600, requested=1)

    states = [await store.take("user:a", **kw) for _ in range(3)]
    assert [s.allowed for s in states] == [True, True, True]
    assert [s.remaining for s in states] == [2, 1, 0]
    assert states[0].reset == 3600

    clock.now += 600
    denied = await store.take("user:a", **kw)
    assert not denied.allowed
    assert denied.remaining == 0
    assert denied.reset == 3000


@pytest.mark.asyncio
async def test_redis_store_refills_after_interval():
    clock = FakeClock()
    store = RedisTokenBucketStore(FakeAsyncRedis(), clock=clock)
    kw = dict(capacity=2, refill_rate=1, interval=60, requested=1)

    await store.take("k", **kw)
    await store.take("k", **kw)
    assert not (await store.take("k", **kw)).allowed

    clock.now += 60
    refilled = await store.take("k", **kw)
    assert refilled.allowed
    assert refilled.remaining == 0

    clock.now += 10_000
    assert (await store.take("k", **kw)).remaining == 1


@pytest.mark.asyncio
async def test_redis_store_buckets_are_per_key():
    redis = FakeAsyncRedis()
    store = RedisTokenBucketStore(redis, clock=FakeClock())
    kw = dict(capacity=1, refill_rate=1, interval=60, requested=1)

    assert (await store.take("a", **kw)).allowed
    assert (await store.take("b", **kw)).allowed
    assert not (await store.take("a", **kw)).allowed
    assert await redis.exists("welth:rl:a", "welth:rl:b") == 2



@pytest.mark.asyncio
async def test_token_bucket_keys_by_characteristic():
    rule = TokenBucket(
        MemoryTokenBucketStore(), characteristics=("user_id",),
        capacity=1, refill_rate=1, interval=3600,
    )
    assert (await rule.evaluate(_details(), {"user_id": "a"}, 1)).conclusion == Conclusion.ALLOW
    assert (await rule.evaluate(_details(), {"user_id": "b"}, 1)).conclusion == Conclusion.ALLOW
    denied = await rule.evaluate(_details(), {"user_id": "a"}, 1)
    assert denied.conclusion == Conclusion.DENY
    assert denied.reason.is_rate_limit()
    assert denied.reason.remaining == 0


def test_token_bucket_falls_back_to_ip():
    rule = TokenBucket(
        MemoryTokenBucketStore(), characteristics=("user_id",),
        capacity=1, refill_rate=1, interval=60,
    )
    assert rule.bucket_key(_details(ip="198.51.100.2"), {}) == "token_bucket:ip:198.51.100.2"


# ═══════════════════════════════════════════════════════════
# Guard
# ═══════════════════════════════════════════════════════════


class ExplodingRule(Rule):
    name = "exploding"

    async def evaluate(self, details, characteristics, requested):
        raise ConnectionError("redis is down")


def test_rule_without_evaluate_cannot_be_built():
    class Incomplete(Rule):
        name = "incomplete"

    with pytest.raises(TypeError):
        Incomplete()


@pytest.mark.asyncio
async def test_guard_first_live_denial_wins():
    guard = Guard([Shield(), DetectBot(allow=[])])
    decision = await guard.protect(_details("curl/8.0", query="q=<script>"))
    assert decision.is_denied()
    assert decision.reason.is_shield()
    assert len(decision.results) == 1


@pytest.mark.asyncio
async def test_guard_dry_run_never_blocks():
    guard = Guard([DetectBot(mode=Mode.DRY_RUN, allow=[])])
    decision = await guard.protect(_details("curl/8.0"))
    assert decision.is_allowed()
    assert decision.results[0].conclusion == Conclusion.DENY


@pytest.mark.asyncio
async def test_guard_fails_open_on_rule_error():
    guard = Guard([ExplodingRule(), DetectBot(allow=[])])
    decision = await guard.protect(_details())
    assert decision.is_allowed()
    assert decision.is_errored()
    assert decision.results[0].reason.is_error()
