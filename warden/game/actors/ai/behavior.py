"""
BehaviorStateMachine: patrol, investigate and chase.

The agent is always in exactly one BehaviorState:

    PATROL       Walk the patrol route, pausing at each point. Initial state.
    INVESTIGATE  Walk to a noise (or to where a chased target was last seen),
                 look around for a few seconds, then go back to patrolling.
    CHASE        Follow a detected target. After losing sight of it, keep
                 chasing for a grace period before falling back to INVESTIGATE.

Transitions are driven by perception callbacks (noise heard, target detected,
target lost) and by deferred timers (patrol pause, investigation wait, grace
period). Timers are never cancelled when something newer happens. Instead each
one captures a StateSnapshot when it is scheduled and does nothing if the
machine has moved on by the time it fires. The snapshot holds the state plus a
generation counter that is bumped on every real transition and on every fresh
sighting, so a grace timer from an earlier loss is stale even if the agent
re-detected its target and never left CHASE.

Everything here runs on the simulation's single logical thread. Perception
callbacks must be delivered between ticks, never during one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, assert_never

import numpy as np

from warden.config import AgentConfig, ConfigurationError
from warden.constants.behavior import BehaviorConstants as Behavior
from warden.game.actors.body import MotionCommand
from warden.types import TargetId, Vec3, Vec3Like
from warden.util.vectors import distance, vec3

from .steering import compute_steering

if TYPE_CHECKING:
    from warden.game.actors.body import MotionSink
    from warden.game.targets import TargetRegistry
    from warden.navigation import NavigationPort
    from warden.sound.emitter import AmbientAudioSink
    from warden.util.timers import TimerHandle, TimerQueue

logger = logging.getLogger(__name__)


class BehaviorState(Enum):
    """The three top-level behaviors. There is no terminal state."""

    PATROL = auto()
    INVESTIGATE = auto()
    CHASE = auto()

    def __str__(self) -> str:
        return self.name.title()


@dataclass(frozen=True, slots=True)
class StateSnapshot:
    """What a deferred callback assumed when it was scheduled."""

    state: BehaviorState
    generation: int


class BehaviorStateMachine:
    """Per-agent behavior controller.

    Owns the current state, patrol progress and chase memory. Each update()
    runs the current state's logic, then steers along the navigation path and
    hands the result to the motion sink.

    The machine holds no reference to the chased entity, only its TargetId,
    which is resolved through the TargetRegistry every tick.

    Attributes:
        config: Immutable tuning for this agent.
        patrol_index: Index of the patrol point currently being walked to.
        is_waiting: True while a deferred timer that will resume movement is
            pending. Ticks are skipped entirely while set.
        last_seen_target_position: Where the chased target was last seen.
            Kept across the CHASE -> INVESTIGATE fallback.
        active_target_id: Target being chased, or None. Kept through the
            grace period after losing sight, so the chase keeps tracking the
            target's live position until the grace timer gives up.
        last_command: Most recent MotionCommand sent to the body.
    """

    def __init__(
        self,
        config: AgentConfig,
        body: MotionSink,
        navigation: NavigationPort | None,
        audio: AmbientAudioSink | None,
        timers: TimerQueue,
        targets: TargetRegistry,
        *,
        name: str = "Agent",
    ) -> None:
        if navigation is None:
            raise ConfigurationError(f"{name}: a navigation capability is required")
        if audio is None:
            raise ConfigurationError(f"{name}: an ambient audio sink is required")

        self.config = config
        self.name = name
        self._body = body
        self._navigation = navigation
        self._audio = audio
        self._timers = timers
        self._targets = targets

        self._state = BehaviorState.PATROL
        # Bumped on every real transition and every fresh sighting. Deferred
        # callbacks compare it against the value captured at schedule time.
        self._generation = 0
        self.patrol_index = 0
        self.is_waiting = False
        self.last_seen_target_position: Vec3 = vec3(body.position)
        self.active_target_id: TargetId | None = None
        self.last_command: MotionCommand | None = None

        self._outstanding: list[TimerHandle] = []
        # Generation under which the current grace period was started.
        self._grace_generation: int | None = None

        self._audio.play_ambient()
        # The first patrol target waits until the world has finished spawning.
        self._defer(0.0, "setup-patrol", self._setup_patrol)

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def state(self) -> BehaviorState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(self._state, self._generation)

    def is_current(self, snapshot: StateSnapshot) -> bool:
        """True if nothing has superseded ``snapshot`` since it was taken."""
        return (
            snapshot.state is self._state and snapshot.generation == self._generation
        )

    @property
    def patrol_points(self) -> tuple[Vec3, ...]:
        return self.config.patrol_points

    @property
    def current_speed(self) -> float:
        if self._state is BehaviorState.CHASE:
            return self.config.chase_speed
        return self.config.patrol_speed

    @property
    def grace_running(self) -> bool:
        """True while a lost-sight grace period is counting down."""
        return self._grace_generation == self._generation

    @property
    def pending_timers(self) -> int:
        return sum(1 for handle in self._outstanding if handle.pending)

    def switch_state(self, new_state: BehaviorState) -> None:
        """Transition to ``new_state`` and run its entry action.

        Switching to the current state does nothing at all.
        """
        if new_state is self._state:
            return

        logger.info(f"{self.name}: {self._state} -> {new_state}")
        self._state = new_state
        self._generation += 1
        self.is_waiting = False

        match new_state:
            case BehaviorState.PATROL:
                self._setup_patrol()
            case BehaviorState.INVESTIGATE:
                # The caller already pointed navigation at the spot to check.
                pass
            case BehaviorState.CHASE:
                self._audio.stop_ambient()
            case _:
                assert_never(new_state)

    # ------------------------------------------------------------------
    # Per-tick update
    # ------------------------------------------------------------------

    def update(self, delta_time: float) -> MotionCommand | None:
        """Run one fixed simulation step.

        Returns:
            The MotionCommand applied to the body, or None if the tick was
            skipped because the agent is waiting.
        """
        if self.is_waiting:
            return None

        match self._state:
            case BehaviorState.PATROL:
                self._process_patrol()
            case BehaviorState.CHASE:
                self._process_chase()
            case BehaviorState.INVESTIGATE:
                self._process_investigate()
            case _:
                assert_never(self._state)

        if self._navigation.is_finished():
            command = MotionCommand(np.zeros(3), self._body.facing)
        else:
            steering = compute_steering(
                np.asarray(self._body.position, dtype=np.float64),
                self._navigation.next_waypoint(),
                self.current_speed,
                self._body.facing,
                delta_time,
            )
            command = MotionCommand(steering.velocity, steering.facing)

        self._body.apply_motion(command, delta_time)
        self.last_command = command
        return command

    def _process_patrol(self) -> None:
        points = self.patrol_points
        if points and self._navigation.is_finished():
            self.patrol_index = (self.patrol_index + 1) % len(points)
            self.is_waiting = True
            logger.debug(
                f"{self.name}: patrol point reached, next is {self.patrol_index}"
            )
            self._defer(
                self.config.patrol_wait_time, "patrol-wait", self._resume_patrol
            )

        if not self._audio.is_playing:
            self._audio.play_ambient()

    def _process_chase(self) -> None:
        if self.active_target_id is None:
            # Hold the last commanded target. A distance-based give-up check
            # would go here.
            return

        target = self._targets.resolve(self.active_target_id)
        if target is None:
            logger.debug(
                f"{self.name}: target {self.active_target_id} no longer exists"
            )
            self.on_target_lost()
            self.active_target_id = None
            return

        position = vec3(target.position)
        self._navigation.set_target(position)
        self.last_seen_target_position = position

    def _process_investigate(self) -> None:
        if not self._navigation.is_finished():
            return

        logger.info(f"{self.name}: reached investigation point, searching")
        self.is_waiting = True
        # Navigation is finished, so this tick already commands zero velocity.
        self._defer(
            Behavior.INVESTIGATE_WAIT_TIME, "investigate-wait", self._end_search
        )

    # ------------------------------------------------------------------
    # Perception callbacks
    # ------------------------------------------------------------------

    def on_noise_heard(self, position: Vec3Like, volume: float = 1.0) -> None:
        """React to a broadcast noise.

        Ignored while chasing or when farther than ``hearing_range``. A noise
        heard while already investigating retargets the investigation and
        restarts it, so the agent walks to the newer noise before searching.
        """
        if self._state is BehaviorState.CHASE:
            return

        noise = vec3(position)
        if distance(self._body.position, noise) > self.config.hearing_range:
            return

        logger.info(f"{self.name}: heard noise at {noise.tolist()} (volume {volume})")
        self._navigation.set_target(noise)
        if self._state is BehaviorState.INVESTIGATE:
            self._restart_investigation()
        else:
            self.switch_state(BehaviorState.INVESTIGATE)

    def on_target_detected(self, target_id: TargetId) -> None:
        """Start (or keep) chasing ``target_id``."""
        logger.info(f"{self.name}: target {target_id} detected")
        self.active_target_id = target_id
        # A fresh sighting invalidates any grace period still running.
        self._generation += 1
        self._grace_generation = None
        self.switch_state(BehaviorState.CHASE)

    def on_target_lost(self) -> None:
        """Start the grace period after losing sight of the chased target.

        Only meaningful while chasing. The target id is kept until the grace
        timer gives up, so the chase keeps following the target's position and
        refreshing the last-seen point in the meantime. Repeated losses inside
        one grace period do not start another one.
        """
        if self._state is not BehaviorState.CHASE:
            return
        if self.grace_running:
            return

        logger.info(
            f"{self.name}: lost sight of target, "
            f"waiting {Behavior.LOST_SIGHT_GRACE_TIME}s before investigating"
        )
        self._grace_generation = self._generation
        self._defer(
            Behavior.LOST_SIGHT_GRACE_TIME, "lost-sight-grace", self._give_up_chase
        )

    # ------------------------------------------------------------------
    # Deferred actions
    # ------------------------------------------------------------------

    def _defer(self, duration: float, label: str, action: Callable[[], None]) -> None:
        """Schedule ``action`` guarded by a snapshot of the current state."""
        snapshot = self.snapshot()

        def fire() -> None:
            if not self.is_current(snapshot):
                logger.debug(
                    f"{self.name}: stale '{label}' from {snapshot.state} ignored "
                    f"(now {self._state})"
                )
                return
            action()

        self._outstanding = [h for h in self._outstanding if h.pending]
        self._outstanding.append(
            self._timers.schedule(duration, fire, label=f"{self.name}:{label}")
        )

    def cancel_pending_timers(self) -> None:
        """Drop every outstanding deferred action (used on despawn)."""
        for handle in self._outstanding:
            handle.cancel()
        self._outstanding.clear()

    def _setup_patrol(self) -> None:
        if self.patrol_points:
            self._navigation.set_target(self.patrol_points[self.patrol_index])

    def _resume_patrol(self) -> None:
        self.is_waiting = False
        self._setup_patrol()

    def _end_search(self) -> None:
        logger.info(f"{self.name}: nothing found, returning to patrol")
        self.switch_state(BehaviorState.PATROL)
        self.is_waiting = False

    def _give_up_chase(self) -> None:
        logger.info(f"{self.name}: target not reacquired, checking last position")
        self._navigation.set_target(self.last_seen_target_position)
        self.switch_state(BehaviorState.INVESTIGATE)
        self.active_target_id = None

    def _restart_investigation(self) -> None:
        self._generation += 1
        self.is_waiting = False
