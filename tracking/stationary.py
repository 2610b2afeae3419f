"""Stationary-object tracking across frames.

The `StationaryTracker` keeps a small state record per object identity and
decides which objects are parked: an object whose centre has moved no more
than ``stationary_movement_threshold`` pixels between consecutive sightings
for ``required_stationary_frames`` frames in a row. Identities are assigned
upstream by the detection pipeline; this module never associates
detections itself.

State is owned by one tracker instance. Run one instance per camera and
feed it frames in arrival order.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, Optional, Tuple

from detection.types import DetectedObject


@dataclass
class TrackedObjectState:
    identity: str
    first_seen_ms: float
    last_seen_ms: float
    history: Deque[Tuple[float, float]] = field(default_factory=deque)
    stationary_frames: int = 0
    is_parked: bool = False


@dataclass(frozen=True)
class Candidate:
    """A detected object admitted to clustering, with its stationary stats."""

    obj: DetectedObject
    stationary_frames: int = 0
    parked_duration_ms: float = 0.0


class StationaryTracker:
    """Track per-identity movement and classify objects as parked.

    Parameters
    ----------
    stationary_movement_threshold : float
        Maximum centre displacement in pixels between two sightings that
        still counts as stationary.
    required_stationary_frames : int
        Consecutive stationary sightings needed before an object is parked.
    history_timeout_ms : float, default 5000
        Identities not seen for longer than this are forgotten.
    history_length : int, default 20
        Number of recent centres kept per identity.
    states : dict, optional
        Pre-populated state table, mainly for tests and warm starts.
    """

    def __init__(
        self,
        stationary_movement_threshold: float,
        required_stationary_frames: int,
        history_timeout_ms: float = 5000.0,
        history_length: int = 20,
        states: Optional[Dict[str, TrackedObjectState]] = None,
    ) -> None:
        self.stationary_movement_threshold = stationary_movement_threshold
        self.required_stationary_frames = required_stationary_frames
        self.history_timeout_ms = history_timeout_ms
        self.history_length = history_length
        self.states: Dict[str, TrackedObjectState] = states if states is not None else {}

    def __len__(self) -> int:
        return len(self.states)

    def __contains__(self, identity: object) -> bool:
        return identity in self.states

    def get(self, identity: str) -> Optional[TrackedObjectState]:
        return self.states.get(identity)

    def reset(self) -> None:
        self.states.clear()

    def purge(self, now_ms: float) -> List[str]:
        """Forget identities whose last sighting is older than the timeout."""
        expired = [
            identity
            for identity, state in self.states.items()
            if now_ms - state.last_seen_ms > self.history_timeout_ms
        ]
        for identity in expired:
            del self.states[identity]
        return expired

    def observe(self, obj: DetectedObject, now_ms: float) -> TrackedObjectState:
        """Record one sighting of ``obj`` and return its updated state."""
        center = obj.center
        state = self.states.get(obj.identity)
        if state is None:
            state = TrackedObjectState(
                identity=obj.identity,
                first_seen_ms=now_ms,
                last_seen_ms=now_ms,
                history=deque([center], maxlen=self.history_length),
            )
            self.states[obj.identity] = state
            return state

        prev_x, prev_y = state.history[-1]
        movement = math.hypot(center[0] - prev_x, center[1] - prev_y)
        state.history.append(center)
        state.last_seen_ms = now_ms
        if movement <= self.stationary_movement_threshold:
            state.stationary_frames += 1
        else:
            state.stationary_frames = 0
            state.is_parked = False
        if state.stationary_frames >= self.required_stationary_frames and state.stationary_frames > 0:
            state.is_parked = True
        return state

    def update(self, objects: Iterable[DetectedObject], now_ms: float) -> List[Candidate]:
        """Process one frame and return the parked objects in input order."""
        self.purge(now_ms)
        parked: List[Candidate] = []
        seen: set[str] = set()
        for obj in objects:
            # Only the first occurrence of an identity within a frame counts
            if obj.identity in seen:
                continue
            seen.add(obj.identity)
            state = self.observe(obj, now_ms)
            if state.is_parked:
                parked.append(
                    Candidate(
                        obj=obj,
                        stationary_frames=state.stationary_frames,
                        parked_duration_ms=now_ms - state.first_seen_ms,
                    )
                )
        return parked

    @staticmethod
    def passthrough(objects: Iterable[DetectedObject]) -> List[Candidate]:
        """Admit every object without touching tracker state.

        Repeated identities keep only their first occurrence.
        """
        candidates: Dict[str, Candidate] = {}
        for obj in objects:
            candidates.setdefault(obj.identity, Candidate(obj=obj))
        return list(candidates.values())
