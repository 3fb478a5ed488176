"""Settings override for the test suite.

tests/conftest.py installs a mock-bridge Settings before every test, so no
test needs BLYNK_TOKEN or a .env file. Production code only calls
get_settings().
"""

import irrigator.lib.config.settings as _settings_module
from irrigator.lib.config.settings import Settings, _load_settings


def set_settings(settings: Settings | None) -> None:
    """Make get_settings() return ``settings``, or clear it with None.

    Also drops the cached environment load, so after clearing, the next
    get_settings() re-reads the environment.
    """
    _settings_module._settings_override = settings
    _load_settings.cache_clear()
