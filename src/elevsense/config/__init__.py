"""Configuration objects and helpers for elevsense.

:mod:`runtime` loads the YAML tuning file (filter constants, recording
duration and tick, snapshot queue sizing) into :class:`FusionConfig`;
:mod:`app_config` resolves where captures and exports live on disk.
"""

from .runtime import FusionConfig, config_from_mapping, load_config

__all__ = ["FusionConfig", "config_from_mapping", "load_config"]
