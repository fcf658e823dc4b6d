"""Edge security: shield, bot detection, and rate limiting.

Learn: Every check is a rule. A guard evaluates its rules against a
request snapshot and returns one Decision (allow/deny + reason).
Two guards exist: the edge guard (shield + bots, runs as middleware)
and the action guard (token bucket per user, called from services).
"""
