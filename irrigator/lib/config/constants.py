"""Shared constants for the configuration module."""

# Pump power model (amps)
POWER_DRAW_RUNNING_AMPS = 2.5
POWER_DRAW_IDLE_AMPS = 0.5

# Completed runs kept in the pump history
HISTORY_CAPACITY = 10

# Calibration bounds
PERCENT_MIN = 0
PERCENT_MAX = 100
ADC_MAX_LIMIT = 65535  # 16-bit converters

DEFAULT_BLYNK_BASE_URL = "https://blynk.cloud/external/api"
