import os


def get_settings_module() -> str:
    # APP_ENV picks the settings module, 'development' by default
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "dayflow_hrms.config.production"

    if env in {"test", "testing"}:
        return "dayflow_hrms.config.testing"

    return "dayflow_hrms.config.development"


def env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean env var; accepts 1/0, true/false, yes/no and on/off."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    text = raw.strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")
