"""Force-directed layout for the relation graph.

``ForceSimulation`` is an iterative physical simulation with the same force
model as d3-force: weak springs along edges, inverse-distance repulsion
between every pair of nodes, a centering force and a minimum-separation
collision constraint. ``LayoutTask`` runs a simulation continuously as an
asyncio task owned by the view that displays it.
"""

import asyncio
import logging
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .builder import RelationGraph

logger = logging.getLogger(__name__)

INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))


@dataclass
class LayoutParams:
    link_distance: float = 100.0
    link_strength: float = 0.1
    charge_strength: float = -200.0
    charge_distance_min: float = 1.0
    collide_radius: float = 30.0
    collide_strength: float = 1.0
    center_strength: float = 1.0
    alpha_min: float = 0.001
    alpha_decay: Optional[float] = None
    velocity_decay: float = 0.4
    drag_alpha_target: float = 0.3

    def __post_init__(self):
        if self.alpha_decay is None:
            # Reaches alpha_min after ~300 ticks
            self.alpha_decay = 1 - self.alpha_min ** (1 / 300)


@dataclass
class Body:
    id: str
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    fx: Optional[float] = None
    fy: Optional[float] = None

    @property
    def pinned(self) -> bool:
        return self.fx is not None


class ForceSimulation:
    """Iterative force simulation over a :class:`RelationGraph`."""

    def __init__(
        self,
        graph: RelationGraph,
        width: float = 800.0,
        height: float = 600.0,
        params: Optional[LayoutParams] = None,
        initial_positions: Optional[dict[str, tuple[float, float]]] = None,
        seed: int = 0,
    ):
        self.graph = graph
        self.width = width
        self.height = height
        self.params = params or LayoutParams()
        self.alpha = 1.0
        self.alpha_target = 0.0
        self._random = random.Random(seed)

        self.bodies: list[Body] = []
        self._index: dict[str, int] = {}
        initial_positions = initial_positions or {}
        cx, cy = self.center
        for i, node in enumerate(graph.nodes):
            if node.id in initial_positions:
                x, y = initial_positions[node.id]
            else:
                # Phyllotaxis arrangement around the viewport centre
                r = INITIAL_RADIUS * math.sqrt(0.5 + i)
                angle = i * INITIAL_ANGLE
                x, y = cx + r * math.cos(angle), cy + r * math.sin(angle)
            self._index[node.id] = i
            self.bodies.append(Body(id=node.id, x=x, y=y))

        self._links = [
            (self._index[e.source], self._index[e.target])
            for e in graph.edges
            if e.source in self._index and e.target in self._index
        ]
        degree = [0] * len(self.bodies)
        for s, t in self._links:
            degree[s] += 1
            degree[t] += 1
        # Higher-degree endpoints move less
        self._link_bias = [degree[s] / (degree[s] + degree[t]) for s, t in self._links]

    @property
    def center(self) -> tuple[float, float]:
        return (self.width / 2, self.height / 2)

    @property
    def is_stable(self) -> bool:
        return self.alpha < self.params.alpha_min

    def positions(self) -> dict[str, tuple[float, float]]:
        return {b.id: (b.x, b.y) for b in self.bodies}

    def tick(self, iterations: int = 1) -> None:
        """Advance the simulation by ``iterations`` steps."""
        for _ in range(iterations):
            self.alpha += (self.alpha_target - self.alpha) * self.params.alpha_decay

            self._apply_links()
            self._apply_charge()
            self._apply_collision()
            self._apply_center()

            decay = 1 - self.params.velocity_decay
            for b in self.bodies:
                if b.fx is None:
                    b.vx *= decay
                    b.x += b.vx
                else:
                    b.x, b.vx = b.fx, 0.0
                if b.fy is None:
                    b.vy *= decay
                    b.y += b.vy
                else:
                    b.y, b.vy = b.fy, 0.0

    def step_until_stable(self, max_ticks: int = 1000) -> int:
        """Tick until alpha drops below alpha_min. Returns ticks taken."""
        ticks = 0
        while not self.is_stable and ticks < max_ticks:
            self.tick()
            ticks += 1
        return ticks

    def reheat(self, alpha: float = 1.0) -> None:
        self.alpha = alpha

    def drag(self, node_id: str, x: float, y: float) -> None:
        """Pin a node at (x, y) and keep the simulation warm while dragging."""
        body = self._body(node_id)
        body.fx, body.fy = x, y
        body.x, body.y = x, y
        self.alpha_target = self.params.drag_alpha_target
        if self.alpha < self.alpha_target:
            self.alpha = self.alpha_target

    def release(self, node_id: str) -> None:
        """Unpin a dragged node and let the simulation cool down."""
        body = self._body(node_id)
        body.fx = body.fy = None
        self.alpha_target = 0.0

    def _body(self, node_id: str) -> Body:
        try:
            return self.bodies[self._index[node_id]]
        except KeyError:
            raise KeyError(f"Unknown node: {node_id}") from None

    def _jiggle(self) -> float:
        return (self._random.random() - 0.5) * 1e-6

    def _apply_links(self) -> None:
        p = self.params
        for (si, ti), bias in zip(self._links, self._link_bias):
            source, target = self.bodies[si], self.bodies[ti]
            x = target.x + target.vx - source.x - source.vx or self._jiggle()
            y = target.y + target.vy - source.y - source.vy or self._jiggle()
            length = math.sqrt(x * x + y * y)
            length = (length - p.link_distance) / length * self.alpha * p.link_strength
            x *= length
            y *= length
            target.vx -= x * bias
            target.vy -= y * bias
            source.vx += x * (1 - bias)
            source.vy += y * (1 - bias)

    def _apply_charge(self) -> None:
        p = self.params
        dist_min2 = p.charge_distance_min ** 2
        bodies = self.bodies
        for i, node in enumerate(bodies):
            for j, other in enumerate(bodies):
                if i == j:
                    continue
                x = other.x - node.x or self._jiggle()
                y = other.y - node.y or self._jiggle()
                l2 = x * x + y * y
                if l2 < dist_min2:
                    l2 = math.sqrt(dist_min2 * l2)
                w = p.charge_strength * self.alpha / l2
                node.vx += x * w
                node.vy += y * w

    def _apply_collision(self) -> None:
        p = self.params
        radius = p.collide_radius
        min_dist = radius * 2
        bodies = self.bodies
        for i, node in enumerate(bodies):
            xi = node.x + node.vx
            yi = node.y + node.vy
            for other in bodies[i + 1:]:
                x = xi - other.x - other.vx
                y = yi - other.y - other.vy
                l2 = x * x + y * y
                if l2 >= min_dist * min_dist:
                    continue
                if x == 0:
                    x = self._jiggle()
                    l2 += x * x
                if y == 0:
                    y = self._jiggle()
                    l2 += y * y
                length = math.sqrt(l2)
                length = (min_dist - length) / length * p.collide_strength
                x *= length
                y *= length
                # Equal radii split the correction evenly
                node.vx += x * 0.5
                node.vy += y * 0.5
                other.vx -= x * 0.5
                other.vy -= y * 0.5

    def _apply_center(self) -> None:
        if not self.bodies:
            return
        cx, cy = self.center
        n = len(self.bodies)
        sx = (sum(b.x for b in self.bodies) / n - cx) * self.params.center_strength
        sy = (sum(b.y for b in self.bodies) / n - cy) * self.params.center_strength
        for b in self.bodies:
            b.x -= sx
            b.y -= sy


class LayoutState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


class LayoutTask:
    """Runs a :class:`ForceSimulation` continuously on the event loop.

    The owner must call :meth:`stop` when its view goes away. Once the
    simulation has cooled down the task waits without ticking until a drag
    or reheat wakes it.
    """

    def __init__(self, simulation: ForceSimulation, tick_interval: float = 1 / 60):
        self.simulation = simulation
        self.tick_interval = tick_interval
        self.state = LayoutState.IDLE
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None
        self._running = asyncio.Event()
        self._wake = asyncio.Event()

    def start(self) -> None:
        if self.state != LayoutState.IDLE:
            raise RuntimeError(f"Layout task cannot start from state '{self.state.value}'")
        self.state = LayoutState.RUNNING
        self._running.set()
        self._task = asyncio.create_task(self._run(), name="layout")
        logger.debug(f"[LAYOUT] Started ({len(self.simulation.bodies)} node(s))")

    def pause(self) -> None:
        if self.state == LayoutState.RUNNING:
            self.state = LayoutState.PAUSED
            self._running.clear()
            logger.debug("[LAYOUT] Paused")

    def resume(self) -> None:
        if self.state == LayoutState.PAUSED:
            self.state = LayoutState.RUNNING
            self._running.set()
            logger.debug("[LAYOUT] Resumed")

    async def stop(self) -> None:
        if self.state == LayoutState.STOPPED:
            return
        self.state = LayoutState.STOPPED
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.debug(f"[LAYOUT] Stopped after {self.ticks} tick(s)")

    def reheat(self, alpha: float = 1.0) -> None:
        self.simulation.reheat(alpha)
        self._wake.set()

    def drag(self, node_id: str, x: float, y: float) -> None:
        self.simulation.drag(node_id, x, y)
        self._wake.set()

    def release(self, node_id: str) -> None:
        self.simulation.release(node_id)
        self._wake.set()

    def snapshot(self) -> dict:
        return {
            "state": self.state.value,
            "ticks": self.ticks,
            "alpha": self.simulation.alpha,
            "stable": self.simulation.is_stable,
            "positions": {
                node_id: {"x": x, "y": y}
                for node_id, (x, y) in self.simulation.positions().items()
            },
        }

    async def _run(self) -> None:
        while True:
            await self._running.wait()
            if self.simulation.is_stable:
                self._wake.clear()
                await self._wake.wait()
                continue
            self.simulation.tick()
            self.ticks += 1
            await asyncio.sleep(self.tick_interval)
