"""Runtime configuration for the fusion engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

logger = logging.getLogger(__name__)

_ALPHA_MIN = 1e-6
_ALPHA_MAX = 1.0 - 1e-6


def _clamp_alpha(value: float) -> float:
    return max(_ALPHA_MIN, min(_ALPHA_MAX, float(value)))


@dataclass(slots=True)
class FusionConfig:
    """
    Tuning knobs for filtering, recording and snapshot fan-out.

    The EWMA constants smooth accelerometer-only elevation. The wearable's
    feed is noisier than the host sensors, so its constant weights new
    samples far less (0.2 against 0.9). The complementary
    constant weights acceleration against angular velocity. Recording
    sessions default to 20 s, checked every 100 ms.
    """

    internal_ewma_alpha: float = 0.9
    external_ewma_alpha: float = 0.2
    complementary_alpha: float = 0.98
    degenerate_epsilon: float = 1e-6

    recording_duration_ms: int = 20_000
    recording_tick_ms: int = 100

    # Thread bridge sizing
    snapshot_queue_size: int = 8

    export_default: float = 0.0

    def sanitized(self) -> FusionConfig:
        """Return a copy with derived limits applied."""
        return FusionConfig(
            internal_ewma_alpha=_clamp_alpha(self.internal_ewma_alpha),
            external_ewma_alpha=_clamp_alpha(self.external_ewma_alpha),
            complementary_alpha=_clamp_alpha(self.complementary_alpha),
            degenerate_epsilon=max(0.0, float(self.degenerate_epsilon)),
            recording_duration_ms=max(1, int(self.recording_duration_ms)),
            recording_tick_ms=max(1, int(self.recording_tick_ms)),
            snapshot_queue_size=max(1, int(self.snapshot_queue_size)),
            export_default=float(self.export_default),
        )


# Keys may sit at the top level or inside one of these blocks, e.g.
#   filters:   {internal_ewma_alpha: 0.9, complementary_alpha: 0.98}
#   recording: {recording_duration_ms: 20000}
_SECTIONS = ("fusion", "filters", "recording")


def _tuning_keys() -> frozenset[str]:
    return frozenset(f.name for f in fields(FusionConfig))


def _flatten_sections(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Lift the keys of every known section block to the top level."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        if key in _SECTIONS and isinstance(value, Mapping):
            flat.update(value)
        else:
            flat[key] = value
    return flat


def config_from_mapping(data: Mapping[str, Any] | None) -> FusionConfig:
    """
    Build a sanitized :class:`FusionConfig` from parsed YAML.

    Keys that name no tuning knob are logged at WARNING and skipped.
    """
    if not data:
        return FusionConfig()
    flat = _flatten_sections(data)
    known = _tuning_keys()
    unknown = sorted(str(key) for key in flat.keys() - known)
    if unknown:
        logger.warning("Ignoring unknown tuning keys: %s", ", ".join(unknown))
    return FusionConfig(**{key: flat[key] for key in flat.keys() & known}).sanitized()


def load_config(path: str | Path | None) -> FusionConfig:
    """Read filter and recording tuning from a YAML file; defaults when there is none."""
    if path is None:
        return FusionConfig()
    cfg_path = Path(path)
    if not cfg_path.is_file():
        logger.info("No tuning file at %s; using defaults", cfg_path)
        return FusionConfig()
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Tuning file {cfg_path} must hold a mapping of knobs, not {type(raw).__name__}")
    return config_from_mapping(raw)


__all__ = ["FusionConfig", "config_from_mapping", "load_config"]
