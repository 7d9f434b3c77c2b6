"""Shared status values for upgrade results."""

UPGRADE_STATUS_UPGRADED = "upgraded"
UPGRADE_STATUS_UP_TO_DATE = "up-to-date"
UPGRADE_STATUS_CANCELLED = "cancelled"
UPGRADE_STATUS_STATE_MOVED = "state-moved"

STEP_DESCRIPTIONS = {
    "state-copy": "Moving state from the migrations table to catalog state",
    "reorganize": "Moving migrations and seeds to new directories",
    "config-rewrite": "Generating new config file",
    "metadata-resync": "Exporting metadata from server",
}


def describe_step(step: str) -> str:
    """Human-readable description of a pipeline step."""
    return STEP_DESCRIPTIONS.get(step, step)
