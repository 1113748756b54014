import os


def get_settings_module() -> str:
    # APP_ENV picks the settings module; anything unrecognised means development.
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "config.production"

    if env in {"test", "testing"}:
        return "config.testing"

    return "config.development"


def parse_location_leaves(raw: str) -> dict:
    """Parse ``"1:18,4:30"`` into ``{1: 18.0, 4: 30.0}`` (yearly leave days per location)."""
    overrides = {}
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        location_id, _, days = part.partition(":")
        overrides[int(location_id)] = float(days)
    return overrides
