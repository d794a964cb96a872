"""
Simulation: the single logical thread every agent runs on.

Owns the shared services (deferred timers, perception, target registry) and
the agents, and advances them in fixed steps. Each step runs, in order:

1. Deferred timers that became due (patrol pauses, searches, grace periods).
2. Sight triggers, which may report detections or losses to their agents.
3. One behavior tick per live agent.

Noise can be emitted at any point between steps; delivery is synchronous, so
it never interleaves with a tick.

Fixed timestep: update() takes variable real-time deltas and converts them
into whole steps through an accumulator, capped per call so a long stall
cannot trigger a death spiral. run() feeds update() from the wall clock,
sleeping between frames to hold a target frame rate.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

import numpy.typing as npt

from warden import config as warden_config
from warden.config import AgentConfig
from warden.events import EventBus
from warden.game.actors.agent import PatrolAgent
from warden.game.actors.ai.perception import PerceptionPort
from warden.game.actors.body import KinematicBody
from warden.game.targets import TargetRegistry
from warden.navigation import DirectNavigator, GridNavigator, NavigationPort
from warden.sound.emitter import AmbientSoundEmitter
from warden.types import (
    AgentId,
    DeltaTime,
    FixedTimestep,
    SoundId,
    TargetId,
    Vec3Like,
)
from warden.util.timers import TimerQueue

if TYPE_CHECKING:
    from warden.game.targets import Perceivable

logger = logging.getLogger(__name__)


class Simulation:
    """Fixed-step world containing agents and perceivable targets."""

    def __init__(
        self,
        fixed_timestep: FixedTimestep = warden_config.FIXED_TIMESTEP,
        max_logic_steps_per_frame: int = warden_config.MAX_LOGIC_STEPS_PER_FRAME,
    ) -> None:
        if fixed_timestep <= 0:
            raise ValueError(f"fixed_timestep must be > 0, got {fixed_timestep}")
        self.fixed_timestep = fixed_timestep
        self.max_logic_steps_per_frame = max_logic_steps_per_frame

        self.timers = TimerQueue()
        self.event_bus = EventBus()
        self.perception = PerceptionPort(self.event_bus)
        self.targets = TargetRegistry()
        self.agents: dict[AgentId, PatrolAgent] = {}

        # Tracks excess frame time to "catch up" logic steps.
        self.accumulator = 0.0
        self.step_count = 0

    @property
    def time(self) -> float:
        """Simulated seconds elapsed."""
        return self.timers.current_time

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------

    def spawn_agent(
        self,
        agent_config: AgentConfig,
        position: Vec3Like = (0.0, 0.0, 0.0),
        *,
        walkable: npt.ArrayLike | None = None,
        cell_size: float = 1.0,
        sound_id: SoundId | None = "guard_hum",
        name: str | None = None,
    ) -> PatrolAgent:
        """Build an agent with reference body, navigator and audio, then add it.

        With ``walkable`` given the agent navigates the grid with A*, otherwise
        it walks straight lines.
        """
        body = KinematicBody(position)
        navigation: NavigationPort
        if walkable is None:
            navigation = DirectNavigator(
                lambda: body.position,
                arrival_threshold=agent_config.arrival_threshold,
            )
        else:
            navigation = GridNavigator(
                walkable,
                lambda: body.position,
                cell_size=cell_size,
                arrival_threshold=agent_config.arrival_threshold,
            )
        agent = PatrolAgent(
            agent_config,
            body,
            navigation,
            AmbientSoundEmitter(sound_id),
            timers=self.timers,
            perception=self.perception,
            targets=self.targets,
            name=name,
        )
        self.spawn(agent)
        return agent

    def spawn(self, agent: PatrolAgent) -> None:
        if agent.agent_id in self.agents:
            raise ValueError(f"{agent.name} is already spawned")
        if not agent.alive:
            raise ValueError(f"{agent.name} has been despawned and cannot return")
        self.agents[agent.agent_id] = agent

    def despawn(self, agent: PatrolAgent) -> None:
        """Remove ``agent`` and release its subscriptions and timers."""
        if agent.agent_id not in self.agents:
            raise KeyError(f"{agent.name} is not part of this simulation")
        del self.agents[agent.agent_id]
        agent.despawn()

    def add_target(self, target: Perceivable) -> TargetId:
        """Make ``target`` visible to agents.

        The registry only holds a weak reference: the caller owns the target's
        lifetime, and a target nobody else references disappears (and counts as
        lost) as soon as it is garbage collected.
        """
        return self.targets.add(target)

    def remove_target(self, target_id: TargetId) -> None:
        self.targets.remove(target_id)

    def emit_noise(self, position: Vec3Like, volume: float = 1.0) -> int:
        """Broadcast a noise to every agent. Each agent range-checks it."""
        return self.perception.emit_noise(position, volume)

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def step(self) -> None:
        """Advance the world by exactly one fixed timestep."""
        self.timers.advance(self.fixed_timestep)
        # Snapshot: timers and perception may despawn agents mid-step.
        agents = list(self.agents.values())
        for agent in agents:
            agent.sense()
        for agent in agents:
            agent.tick(self.fixed_timestep)
        self.step_count += 1

    def advance(self, seconds: float) -> int:
        """Run as many whole steps as fit in ``seconds`` (rounded to nearest)."""
        steps = max(0, round(seconds / self.fixed_timestep))
        for _ in range(steps):
            self.step()
        return steps

    def update(self, delta_time: DeltaTime) -> int:
        """Convert a real-time delta into fixed steps.

        Returns:
            The number of steps run.
        """
        self.accumulator += delta_time
        steps = 0
        while (
            self.accumulator >= self.fixed_timestep
            and steps < self.max_logic_steps_per_frame
        ):
            self.step()
            self.accumulator -= self.fixed_timestep
            steps += 1

        if self.accumulator >= self.fixed_timestep:
            # Hit the cap: drop the backlog rather than carrying it forever.
            dropped = self.accumulator
            self.accumulator %= self.fixed_timestep
            logger.debug(
                f"Dropped {dropped - self.accumulator:.3f}s of backlog after "
                f"{steps} steps"
            )
        return steps

    def run(
        self,
        duration: float,
        fps: float | None = warden_config.TARGET_FPS,
    ) -> int:
        """Drive update() from the wall clock for ``duration`` real seconds.

        With ``fps`` set, each frame sleeps until its slot comes up. A frame
        that starts late re-anchors the schedule instead of bunching the
        following frames together. With ``fps`` None or <= 0 frames run back
        to back.

        Returns:
            The number of fixed steps run.
        """
        frame_time = 1.0 / fps if fps and fps > 0 else 0.0
        start = previous = time.perf_counter()
        next_frame = start
        steps = 0
        while previous - start < duration:
            if frame_time:
                next_frame += frame_time
                wait = next_frame - time.perf_counter()
                if wait > 0:
                    time.sleep(wait)
                else:
                    next_frame -= wait
            now = time.perf_counter()
            steps += self.update(DeltaTime(max(0.0, now - previous)))
            previous = now
        return steps
