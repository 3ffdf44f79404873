"""Force relaxation — a pure ``step_simulation(state, dt) -> state`` plus a driver.

The physics is deterministic: no randomness, no clocks, no shared state.
Each tick:

1. cools ``alpha`` toward ``alpha_target``;
2. accumulates spring, repulsion and anchor forces (scaled by alpha);
3. integrates velocity and position for free bodies only;
4. resolves minimum-separation overlaps;
5. clamps free bodies to the bounds rectangle.

Pinned bodies take part in every force as sources but never move.
:class:`RelaxationDriver` owns the loop that calls the step: it enforces
the energy threshold, the iteration ceiling and the wall-clock timeout.
"""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import StrEnum

import structlog

from refnet.config.models import SimulationConfig

logger = structlog.get_logger(__name__)

_GOLDEN_ANGLE = math.pi * (3 - math.sqrt(5))


@dataclass(frozen=True, slots=True)
class Body:
    """Physics view of one node."""

    id: str
    x: float
    y: float
    anchor_x: float
    anchor_y: float
    pinned: bool = False
    vx: float = 0.0
    vy: float = 0.0


@dataclass(frozen=True, slots=True)
class Bounds:
    """Rectangle free bodies are clamped to."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    def clamp(self, x: float, y: float) -> tuple[float, float]:
        return (
            min(max(x, self.min_x), self.max_x),
            min(max(y, self.min_y), self.max_y),
        )


@dataclass(frozen=True)
class SimulationState:
    """Immutable snapshot of the simulation between ticks."""

    bodies: tuple[Body, ...]
    springs: tuple[tuple[int, int], ...]
    bounds: Bounds
    config: SimulationConfig = field(default_factory=SimulationConfig)
    alpha: float = 1.0
    alpha_target: float = 0.0
    tick: int = 0

    @property
    def kinetic_energy(self) -> float:
        return sum(0.5 * (b.vx * b.vx + b.vy * b.vy) for b in self.bodies if not b.pinned)

    @property
    def free_count(self) -> int:
        return sum(1 for b in self.bodies if not b.pinned)

    def index_of(self, body_id: str) -> int:
        for i, body in enumerate(self.bodies):
            if body.id == body_id:
                return i
        raise KeyError(body_id)

    def with_body(self, body_id: str, **changes: float | bool) -> SimulationState:
        """Return a copy with one body replaced."""
        i = self.index_of(body_id)
        bodies = list(self.bodies)
        bodies[i] = replace(bodies[i], **changes)  # type: ignore[arg-type]
        return replace(self, bodies=tuple(bodies))


def _direction(i: int, j: int, dx: float, dy: float) -> tuple[float, float, float]:
    """Unit vector from body i toward body j and their distance.

    Coincident centers get a deterministic direction that is opposite
    for (i, j) and (j, i), so the pair still separates.
    """
    d = math.hypot(dx, dy)
    if d > 1e-9:
        return dx / d, dy / d, d
    theta = _GOLDEN_ANGLE * (min(i, j) * 31 + max(i, j))
    sign = 1.0 if i < j else -1.0
    return sign * math.cos(theta), sign * math.sin(theta), 0.0


def step_simulation(state: SimulationState, dt: float = 1.0) -> SimulationState:
    """Advance the simulation by one tick and return the new state."""
    cfg = state.config
    alpha = state.alpha + (state.alpha_target - state.alpha) * cfg.alpha_decay
    bodies = state.bodies
    n = len(bodies)
    xs = [b.x for b in bodies]
    ys = [b.y for b in bodies]
    free = [not b.pinned for b in bodies]
    fx = [0.0] * n
    fy = [0.0] * n

    # (a) springs toward graph neighbors at the rest length
    for i, j in state.springs:
        if i == j or not (free[i] or free[j]):
            continue
        ux, uy, d = _direction(i, j, xs[j] - xs[i], ys[j] - ys[i])
        pull = (d - cfg.spring_rest_length) * cfg.spring_strength * alpha
        share = 0.5 if free[i] and free[j] else 1.0
        fx[i] += ux * pull * share
        fy[i] += uy * pull * share
        fx[j] -= ux * pull * share
        fy[j] -= uy * pull * share

    # (b) short-range pairwise repulsion, felt by free bodies only
    for i in range(n):
        if not free[i]:
            continue
        for j in range(n):
            if i == j:
                continue
            ux, uy, d = _direction(i, j, xs[j] - xs[i], ys[j] - ys[i])
            if d >= cfg.repulsion_range:
                continue
            push = cfg.repulsion_strength * alpha / max(d, 1.0)
            fx[i] -= ux * push
            fy[i] -= uy * push

    # (c) restoring pull toward the anchor, then integrate
    moved: list[Body] = []
    for i, body in enumerate(bodies):
        if not free[i]:
            moved.append(replace(body, vx=0.0, vy=0.0))
            continue
        fx[i] += (body.anchor_x - body.x) * cfg.anchor_strength_x * alpha
        fy[i] += (body.anchor_y - body.y) * cfg.anchor_strength_y * alpha
        vx = (body.vx + fx[i]) * (1.0 - cfg.velocity_decay)
        vy = (body.vy + fy[i]) * (1.0 - cfg.velocity_decay)
        moved.append(replace(body, x=body.x + vx * dt, y=body.y + vy * dt, vx=vx, vy=vy))

    # (d) minimum-separation collision constraint, relaxed pairwise
    xs = [b.x for b in moved]
    ys = [b.y for b in moved]
    sep = cfg.min_separation
    for _ in range(cfg.collision_passes):
        for i in range(n):
            for j in range(i + 1, n):
                if not (free[i] or free[j]):
                    continue
                ux, uy, d = _direction(i, j, xs[j] - xs[i], ys[j] - ys[i])
                if d >= sep:
                    continue
                overlap = sep - d
                if free[i] and free[j]:
                    xs[i] -= ux * overlap / 2
                    ys[i] -= uy * overlap / 2
                    xs[j] += ux * overlap / 2
                    ys[j] += uy * overlap / 2
                elif free[i]:
                    xs[i] -= ux * overlap
                    ys[i] -= uy * overlap
                else:
                    xs[j] += ux * overlap
                    ys[j] += uy * overlap

    # (e) bounds clamp for free bodies
    out: list[Body] = []
    for i, body in enumerate(moved):
        if free[i]:
            x, y = state.bounds.clamp(xs[i], ys[i])
            out.append(replace(body, x=x, y=y))
        else:
            out.append(body)

    return replace(state, bodies=tuple(out), alpha=alpha, tick=state.tick + 1)


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------


class SettleReason(StrEnum):
    """Why the relaxation loop stopped."""

    CONVERGED = "converged"
    ITERATION_LIMIT = "iteration_limit"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


class RelaxationDriver:
    """Runs :func:`step_simulation` until settled, exhausted, or cancelled.

    ``run()`` ticks back-to-back and is what :func:`refnet.network.layout.layout`
    uses. ``run_async()`` paces ticks with ``asyncio.sleep`` for hosts that
    animate the relaxation; cancelling the task (or calling :meth:`cancel`)
    stops the loop and releases the pending sleep.
    """

    def __init__(
        self,
        state: SimulationState,
        *,
        clock: Callable[[], float] = time.monotonic,
        on_tick: Callable[[SimulationState], None] | None = None,
    ) -> None:
        self._state = state
        self._clock = clock
        self._on_tick = on_tick
        self._cancelled = False
        self.reason: SettleReason | None = None

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def running(self) -> bool:
        return self.reason is None and not self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def set_alpha_target(self, value: float) -> None:
        """Reheat (or cool) the simulation, e.g. while a node is dragged."""
        self._state = replace(self._state, alpha_target=value)

    def position_of(self, body_id: str) -> tuple[float, float]:
        """Current coordinates of *body_id* as of the last tick."""
        body = self._state.bodies[self._state.index_of(body_id)]
        return (body.x, body.y)

    def move_body(self, body_id: str, x: float, y: float, *, pinned: bool = True) -> None:
        """Move a body between ticks (drag)."""
        self._state = self._state.with_body(body_id, x=x, y=y, vx=0.0, vy=0.0, pinned=pinned)

    def _check_stop(self, started: float) -> SettleReason | None:
        cfg = self._state.config
        if self._cancelled:
            return SettleReason.CANCELLED
        if self._state.tick >= cfg.max_iterations:
            return SettleReason.ITERATION_LIMIT
        if self._clock() - started >= cfg.settle_timeout:
            return SettleReason.TIMEOUT
        return None

    def _advance(self) -> SettleReason | None:
        self._state = step_simulation(self._state, self._state.config.dt)
        if self._on_tick is not None:
            self._on_tick(self._state)
        if self._state.kinetic_energy < self._state.config.energy_threshold:
            return SettleReason.CONVERGED
        return None

    def run(self) -> SettleReason:
        """Tick until a stop condition holds. Returns the reason."""
        started = self._clock()
        reason = self._check_stop(started)
        while reason is None:
            reason = self._advance() or self._check_stop(started)
        return self._finish(reason)

    async def run_async(self, interval: float | None = None) -> SettleReason:
        """Tick on the event loop, sleeping *interval* seconds between ticks."""
        delay = self._state.config.tick_interval if interval is None else interval
        started = self._clock()
        try:
            reason = self._check_stop(started)
            while reason is None:
                reason = self._advance() or self._check_stop(started)
                if reason is None:
                    await asyncio.sleep(delay)
        except asyncio.CancelledError:
            self._cancelled = True
            self._finish(SettleReason.CANCELLED)
            raise
        return self._finish(reason)

    def _finish(self, reason: SettleReason) -> SettleReason:
        self.reason = reason
        logger.debug(
            "relaxation_stopped",
            reason=str(reason),
            ticks=self._state.tick,
            energy=round(self._state.kinetic_energy, 6),
        )
        return reason
