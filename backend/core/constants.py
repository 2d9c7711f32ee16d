"""
Core constants — **Single Source of Truth** for project-wide magic numbers.

Any formula or business rule that references a numeric constant should
import it from here instead of hardcoding.  This avoids drift between
apps that use the same value.
"""

# ── Points Calculation ──────────────────────────────────────────────
# Weight of each report status in a user's score:
#     points = pending × 1 + in_progress × 5 + resolved × 10
POINTS_PER_PENDING: int = 1
POINTS_PER_IN_PROGRESS: int = 5
POINTS_PER_RESOLVED: int = 10

# ── Push Gateway ────────────────────────────────────────────────────
# Defaults only; ``settings.PUSH_GATEWAY_*`` take precedence.
DEFAULT_PUSH_GATEWAY_URL: str = "https://exp.host/--/api/v2/push/send"
DEFAULT_PUSH_GATEWAY_TIMEOUT: float = 5.0  # seconds
PUSH_SOUND: str = "default"

# ── Dashboard ───────────────────────────────────────────────────────
RECENT_REPORTS_WINDOW_DAYS: int = 30
