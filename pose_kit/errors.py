from __future__ import annotations


class PoseKitError(Exception):
    """Base class for pose_kit errors."""


class UnsupportedModelError(PoseKitError, ValueError):
    def __init__(self, model: object, supported=()):
        self.model = model
        self.supported = tuple(supported)
        msg = f"Unsupported model: {model!r}"
        if self.supported:
            msg += f" (supported: {', '.join(self.supported)})"
        super().__init__(msg)


class LoadFailure(PoseKitError, RuntimeError):
    """Model artifact could not be fetched, parsed or compiled."""
