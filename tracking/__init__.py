"""Tracking package.

This package keeps per-identity state across video frames. Identities are
assigned upstream; the `StationaryTracker` measures how far each object
moves between sightings and marks objects that stay put as parked.
"""

from .stationary import Candidate, StationaryTracker, TrackedObjectState

__all__ = ["Candidate", "StationaryTracker", "TrackedObjectState"]
