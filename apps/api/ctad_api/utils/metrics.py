"""Prometheus metrics."""

from prometheus_client import Counter, Histogram

# Declaration ledger
works_created = Counter(
    "ctad_works_created_total",
    "Total works created with their declaration",
)

revisions_appended = Counter(
    "ctad_revisions_appended_total",
    "Total declaration revisions appended",
)

audio_references_recorded = Counter(
    "ctad_audio_references_total",
    "Total audio references (SHA-256 digests) recorded",
)

# Process capture
process_declarations = Counter(
    "ctad_process_declarations_total",
    "Total process declarations received",
    ["platform", "consent"],
)

points_awarded = Histogram(
    "ctad_reward_points_awarded",
    "Points awarded per rewarded contribution",
    buckets=(5, 10, 25, 50, 75, 100, 150, 200, 300),
)

tier_changes = Counter(
    "ctad_contributor_tier_changes_total",
    "Contributor tier promotions",
    ["to_tier"],
)

reward_failures = Counter(
    "ctad_reward_failures_total",
    "Reward calculations that failed after the process declaration was stored",
)
