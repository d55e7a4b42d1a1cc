"""Runtime services shared by every component: telemetry and observables."""

from .observable import ObservableValue

__all__ = ["ObservableValue"]
