"""Exception hierarchy for the K* pairing engine.

Candidate and pair rejections are ordinary control flow and never raise.
These exceptions cover broken configuration and inconsistent input data.
"""


class KstarMixError(Exception):
    """Base class for all package-specific errors."""


class ConfigurationError(KstarMixError, ValueError):
    """Raised when an analysis configuration is invalid or incomplete."""


class InputContractError(KstarMixError, ValueError):
    """Raised when supplied collision/track/V0 data is malformed or inconsistent."""


class DaughterResolutionError(InputContractError):
    """Raised when a V0 references a daughter track id absent from its collision."""

    def __init__(self, v0_id: int, track_id: int, collision_id: int | None = None):
        self.v0_id = v0_id
        self.track_id = track_id
        self.collision_id = collision_id
        where = "" if collision_id is None else f" in collision {collision_id}"
        super().__init__(f"V0 {v0_id} references unknown daughter track {track_id}{where}.")
