"""Known bot catalog and User-Agent classification.

Learn: Bots are identified by User-Agent only. Each entry has a stable
name (used in allow/deny lists) and one or more categories, referenced
as "CATEGORY:<NAME>". Anything that looks like a crawler but is not in
the catalog is reported as UNKNOWN.
"""

import re
from dataclasses import dataclass
from typing import Optional

CATEGORY_PREFIX = "CATEGORY:"

CATEGORIES = frozenset({
    "AI",
    "GOOGLE",
    "MICROSOFT",
    "MONITOR",
    "PREVIEW",
    "PROGRAMMATIC",
    "SEARCH_ENGINE",
    "SLACK",
    "SOCIAL",
    "TOOL",
    "UNKNOWN",
})


@dataclass(frozen=True)
class BotSignature:
    name: str
    categories: tuple[str, ...]
    pattern: re.Pattern


def _sig(name: str, categories: tuple[str, ...], pattern: str) -> BotSignature:
    return BotSignature(name, categories, re.compile(pattern, re.IGNORECASE))


BOTS: tuple[BotSignature, ...] = (
    # Search engines
    _sig("GOOGLE_CRAWLER", ("SEARCH_ENGINE", "GOOGLE"), r"Googlebot|Google-InspectionTool"),
    _sig("BING_CRAWLER", ("SEARCH_ENGINE", "MICROSOFT"), r"bingbot|BingPreview"),
    _sig("DUCKDUCKGO_CRAWLER", ("SEARCH_ENGINE",), r"DuckDuckBot"),
    _sig("YANDEX_CRAWLER", ("SEARCH_ENGINE",), r"YandexBot"),
    _sig("BAIDU_CRAWLER", ("SEARCH_ENGINE",), r"Baiduspider"),
    _sig("APPLE_CRAWLER", ("SEARCH_ENGINE",), r"Applebot"),
    # AI crawlers
    _sig("OPENAI_CRAWLER", ("AI",), r"GPTBot|ChatGPT-User|OAI-SearchBot"),
    _sig("ANTHROPIC_CRAWLER", ("AI",), r"ClaudeBot|Claude-Web|anthropic-ai"),
    _sig("PERPLEXITY_CRAWLER", ("AI",), r"PerplexityBot"),
    _sig("COMMON_CRAWL", ("AI",), r"CCBot"),
    # Link previews and social
    _sig("FACEBOOK_CRAWLER", ("SOCIAL", "PREVIEW"), r"facebookexternalhit|facebookcatalog"),
    _sig("TWITTER_CRAWLER", ("SOCIAL", "PREVIEW"), r"Twitterbot"),
    _sig("SLACK_CRAWLER", ("SLACK", "PREVIEW"), r"Slackbot|Slack-ImgProxy"),
    _sig("DISCORD_CRAWLER", ("SOCIAL", "PREVIEW"), r"Discordbot"),
    # Monitors
    _sig("UPTIMEROBOT", ("MONITOR",), r"UptimeRobot"),
    _sig("PINGDOM", ("MONITOR",), r"Pingdom"),
    # Tools and HTTP libraries
    _sig("CURL", ("TOOL",), r"^curl/"),
    _sig("WGET", ("TOOL",), r"^Wget/"),
    _sig("HEADLESS_CHROME", ("TOOL",), r"HeadlessChrome"),
    _sig("GO_HTTP", ("PROGRAMMATIC",), r"^Go-http-client/"),
    _sig("PYTHON_REQUESTS", ("PROGRAMMATIC",), r"^python-requests/"),
    _sig("PYTHON_HTTPX", ("PROGRAMMATIC",), r"^python-httpx/"),
    _sig("PYTHON_URLLIB", ("PROGRAMMATIC",), r"^Python-urllib/"),
    _sig("PYTHON_AIOHTTP", ("PROGRAMMATIC",), r"aiohttp/"),
    _sig("NODE_FETCH", ("PROGRAMMATIC",), r"^node-fetch|^undici"),
    _sig("AXIOS", ("PROGRAMMATIC",), r"^axios/"),
    _sig("JAVA_HTTP", ("PROGRAMMATIC",), r"^Java/|Apache-HttpClient"),
)

BOT_NAMES = frozenset(b.name for b in BOTS) | {"UNKNOWN"}

_GENERIC_BOT = re.compile(r"bot\b|crawler|spider|scraper", re.IGNORECASE)


@dataclass(frozen=True)
class BotMatch:
    name: str
    categories: tuple[str, ...]

    def matches(self, entry: str) -> bool:
        """True if an allow/deny list entry refers to this bot."""
        if entry.startswith(CATEGORY_PREFIX):
            return entry[len(CATEGORY_PREFIX):] in self.categories
        return entry == self.name


UNKNOWN_BOT = BotMatch("UNKNOWN", ("UNKNOWN",))


def classify(user_agent: Optional[str]) -> Optional[BotMatch]:
    """Return the bot a User-Agent belongs to, or None for a browser.

    A missing or blank User-Agent is always a bot.
    """
    if not user_agent or not user_agent.strip():
        return UNKNOWN_BOT
    for bot in BOTS:
        if bot.pattern.search(user_agent):
            return BotMatch(bot.name, bot.categories)
    if _GENERIC_BOT.search(user_agent):
        return UNKNOWN_BOT
    return None


def validate_entries(entries: list[str]) -> None:
    """Raise ValueError for allow/deny entries that name nothing."""
    for entry in entries:
        if entry.startswith(CATEGORY_PREFIX):
            if entry[len(CATEGORY_PREFIX):] not in CATEGORIES:
                raise ValueError(f"Unknown bot category: {entry}")
        elif entry not in BOT_NAMES:
            raise ValueError(f"Unknown bot name: {entry}")
