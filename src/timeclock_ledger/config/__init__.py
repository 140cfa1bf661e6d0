import os


def get_settings_module() -> str:
    # Environment comes from APP_ENV, 'development' by default
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "timeclock_ledger.config.production"

    if env in {"test", "testing"}:
        return "timeclock_ledger.config.testing"

    return "timeclock_ledger.config.development"
