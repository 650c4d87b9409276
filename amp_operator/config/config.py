"""
Load the operator boot config at import time, reject invalid values, and apply
the baseline log configuration that each reconciliation later refines
"""

# Standard
import os

# First Party
import aconfig
import alog

# Local
from .validation import get_invalid_params

CONFIG_DIR = os.path.dirname(__file__)


def _load_yaml(file_name: str, override_env_vars: bool) -> aconfig.Config:
    return aconfig.Config.from_yaml(
        os.path.join(CONFIG_DIR, file_name), override_env_vars=override_env_vars
    )


# Boot config values may be overridden by env vars (e.g. DRY_RUN=true)
library_config = _load_yaml("config.yaml", override_env_vars=True)

# The validation schema itself is fixed
validation_config = _load_yaml("config_validation.yaml", override_env_vars=False)

invalid_params = get_invalid_params(library_config, validation_config)
if invalid_params:
    raise ValueError(f"Invalid amp_operator configuration: {invalid_params}")

alog.configure(
    default_level=library_config.log_level,
    filters=library_config.log_filters,
    formatter="json" if library_config.log_json else "pretty",
    thread_id=library_config.log_thread_id,
)
