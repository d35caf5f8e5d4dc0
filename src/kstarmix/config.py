"""Analysis configuration: one frozen container aggregating every cut group.

Defaults reproduce the standard charged K* selection. `AnalysisConfig.from_dict`
accepts the nested mapping stored in JSON configuration files:

    {
      "estimator": "ft0c",
      "v0": {"cos_pa_min": 0.99},
      "mixing": {"n_mix": 10, "vertex_axis": [20, -10, 10]}
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping

from .events import MultiplicityEstimator, estimator_from_flags
from .exceptions import ConfigurationError
from .models import (
    Axis,
    EventCuts,
    MixingConfig,
    PIDCuts,
    QAFlags,
    TrackAcceptance,
    TrackSelectionCuts,
    V0Cuts,
    V0DaughterCuts,
)

_SECTIONS: dict[str, type] = {
    "event": EventCuts,
    "acceptance": TrackAcceptance,
    "track": TrackSelectionCuts,
    "pid": PIDCuts,
    "v0_daughter": V0DaughterCuts,
    "v0": V0Cuts,
    "qa": QAFlags,
    "mixing": MixingConfig,
}

_AXES = ("multiplicity_axis", "pt_axis", "mass_axis", "vertex_z_axis")


@dataclass(frozen=True)
class AnalysisConfig:
    """Complete configuration of one same-event + mixed-event pass."""

    event: EventCuts = field(default_factory=EventCuts)
    acceptance: TrackAcceptance = field(default_factory=TrackAcceptance)
    track: TrackSelectionCuts = field(default_factory=TrackSelectionCuts)
    pid: PIDCuts = field(default_factory=PIDCuts)
    v0_daughter: V0DaughterCuts = field(default_factory=V0DaughterCuts)
    v0: V0Cuts = field(default_factory=V0Cuts)
    qa: QAFlags = field(default_factory=QAFlags)
    mixing: MixingConfig = field(default_factory=MixingConfig)
    estimator: MultiplicityEstimator = MultiplicityEstimator.FT0C_CENT
    process_same_event: bool = True
    process_mixed_event: bool = True
    pair_rapidity_max: float = 0.5
    # Output mass-histogram binning: (multiplicity, pT, invariant mass).
    multiplicity_axis: Axis = Axis(200, 0.0, 200.0, "multiplicity")
    pt_axis: Axis = Axis(200, 0.0, 20.0, "pt")
    mass_axis: Axis = Axis(90, 0.6, 1.5, "mass")
    # Event-counter vertex histogram binning.
    vertex_z_axis: Axis = Axis(100, -10.0, 10.0, "vertex_z")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AnalysisConfig":
        """Build a configuration from a nested mapping; unknown keys are errors."""
        if not isinstance(data, Mapping):
            raise ConfigurationError("Configuration payload must be an object.")
        kwargs: dict[str, Any] = {}
        known = {f.name for f in fields(cls)}
        for key, value in data.items():
            if key not in known:
                raise ConfigurationError(f"Unknown configuration key '{key}'.")
            if key in _SECTIONS:
                kwargs[key] = _build_section(_SECTIONS[key], value, key)
            elif key in _AXES:
                kwargs[key] = parse_axis(value, key)
            elif key == "estimator":
                kwargs[key] = parse_estimator(value)
            else:
                kwargs[key] = value
        return cls(**kwargs)

    def with_overrides(self, **changes: Any) -> "AnalysisConfig":
        """Return a copy with top-level fields replaced."""
        return replace(self, **changes)


def parse_estimator(value: Any) -> MultiplicityEstimator:
    """Accept an estimator name such as `ft0-mult`, `ft0c` or `ft0m`.

    A mapping `{"mult_ft0": bool, "cent_ft0c": bool}` selects the estimator
    through the two-switch form instead.
    """
    if isinstance(value, MultiplicityEstimator):
        return value
    if isinstance(value, Mapping):
        unknown = set(value) - {"mult_ft0", "cent_ft0c"}
        if unknown:
            raise ConfigurationError(f"Unknown estimator switch(es): {', '.join(sorted(unknown))}.")
        return estimator_from_flags(bool(value.get("mult_ft0", False)), bool(value.get("cent_ft0c", True)))
    try:
        return MultiplicityEstimator(str(value).strip().lower())
    except ValueError as exc:
        supported = ", ".join(e.value for e in MultiplicityEstimator)
        raise ConfigurationError(
            f"Unknown multiplicity estimator '{value}'. Supported: {supported}"
        ) from exc


def parse_axis(value: Any, name: str) -> Axis:
    """Parse `[n_bins, low, high]` or `{"n_bins":..., "low":..., "high":...}` into an `Axis`."""
    if isinstance(value, Axis):
        return value
    try:
        if isinstance(value, (list, tuple)) and len(value) == 3:
            return Axis(int(value[0]), float(value[1]), float(value[2]), name)
        if isinstance(value, Mapping):
            return Axis(
                int(value["n_bins"]),
                float(value["low"]),
                float(value["high"]),
                str(value.get("name", name)),
            )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid axis definition for '{name}': {exc}") from exc
    raise ConfigurationError(
        f"Axis '{name}' must be [n_bins, low, high] or an object with n_bins/low/high."
    )


def _build_section(section_type: type, payload: Any, section: str):
    """Instantiate one cut container, converting nested axis definitions."""
    if isinstance(payload, section_type):
        return payload
    if not isinstance(payload, Mapping):
        raise ConfigurationError(f"Configuration section '{section}' must be an object.")
    known = {f.name for f in fields(section_type)}
    kwargs: dict[str, Any] = {}
    for key, value in payload.items():
        if key not in known:
            raise ConfigurationError(f"Unknown key '{key}' in configuration section '{section}'.")
        kwargs[key] = parse_axis(value, key) if key.endswith("_axis") else value
    if section_type is MixingConfig and kwargs.get("binning_variable", "multiplicity") not in (
        "multiplicity",
        "contributors",
    ):
        raise ConfigurationError(
            f"Mixing binning_variable must be 'multiplicity' or 'contributors', "
            f"got {kwargs['binning_variable']!r}."
        )
    try:
        return section_type(**kwargs)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration section '{section}': {exc}") from exc
