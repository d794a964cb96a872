"""End-to-end tests: agents stepping inside a Simulation."""

from __future__ import annotations

import gc
import logging
from unittest.mock import patch

import numpy as np
import pytest

from tests.helpers import PATROL_ROUTE
from warden.config import AgentConfig
from warden.game.actors import PatrolAgent
from warden.game.actors.ai import BehaviorState
from warden.game.targets import Target
from warden.simulation import Simulation
from warden.util.vectors import distance


@pytest.fixture
def sim() -> Simulation:
    return Simulation()


@pytest.fixture
def guard(sim: Simulation) -> PatrolAgent:
    return sim.spawn_agent(AgentConfig(patrol_points=PATROL_ROUTE), name="Guard")


class FakeTime:
    """Stands in for the time module: perf_counter() and sleep() on a fake clock.

    Every perf_counter() call moves time forward by ``per_call`` seconds.
    """

    def __init__(self, per_call: float = 0.0) -> None:
        self.now = 0.0
        self.per_call = per_call
        self.sleeps: list[float] = []

    def perf_counter(self) -> float:
        current = self.now
        self.now += self.per_call
        return current

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestPatrol:
    def test_walks_to_first_point_and_pauses(
        self, sim: Simulation, guard: PatrolAgent
    ) -> None:
        # 8.5 units at 2 u/s: arrives after about 4.25s.
        sim.advance(4.0)
        assert guard.machine.patrol_index == 0
        assert guard.body.position[0] > 7.0

        sim.advance(0.5)
        assert guard.machine.patrol_index == 1
        assert guard.machine.is_waiting

        sim.advance(1.0)
        assert not guard.machine.is_waiting
        np.testing.assert_array_equal(guard.navigation.target, PATROL_ROUTE[1])

    def test_ambient_audio_plays_while_patrolling(
        self, sim: Simulation, guard: PatrolAgent
    ) -> None:
        sim.step()
        assert guard.audio.is_playing

    def test_idle_without_route(self, sim: Simulation) -> None:
        agent = sim.spawn_agent(AgentConfig(), (2.0, 0.0, 2.0))
        sim.advance(2.0)
        np.testing.assert_array_equal(agent.body.position, (2.0, 0.0, 2.0))
        assert agent.state is BehaviorState.PATROL


class TestNoise:
    def test_investigate_then_return_to_patrol(
        self, sim: Simulation, guard: PatrolAgent
    ) -> None:
        sim.emit_noise((0.0, 0.0, 5.0))
        assert guard.state is BehaviorState.INVESTIGATE

        # 3.5 units at 2 u/s, then a 3s search.
        sim.advance(1.0)
        assert not guard.machine.is_waiting
        sim.advance(1.5)
        assert guard.machine.is_waiting
        assert guard.state is BehaviorState.INVESTIGATE

        sim.advance(2.5)
        assert guard.state is BehaviorState.PATROL
        np.testing.assert_array_equal(guard.navigation.target, PATROL_ROUTE[0])

    def test_noise_out_of_range_is_ignored(
        self, sim: Simulation, guard: PatrolAgent
    ) -> None:
        sim.emit_noise((0.0, 0.0, 40.0))
        assert guard.state is BehaviorState.PATROL

    def test_only_agents_in_range_react(self, sim: Simulation) -> None:
        near = sim.spawn_agent(AgentConfig(), (0.0, 0.0, 0.0))
        far = sim.spawn_agent(AgentConfig(), (100.0, 0.0, 0.0))

        sim.emit_noise((3.0, 0.0, 0.0))

        assert near.state is BehaviorState.INVESTIGATE
        assert far.state is BehaviorState.PATROL


class TestChase:
    def test_sight_starts_chase_and_silences_audio(
        self, sim: Simulation, guard: PatrolAgent
    ) -> None:
        intruder = Target((5.0, 0.0, 0.0))
        sim.add_target(intruder)
        sim.step()

        assert guard.state is BehaviorState.CHASE
        assert not guard.audio.is_playing
        assert guard.machine.current_speed == 4.5
        assert intruder.target_id == guard.machine.active_target_id

    def test_follows_a_moving_target(self, sim: Simulation, guard: PatrolAgent) -> None:
        intruder = Target((5.0, 0.0, 0.0))
        sim.add_target(intruder)
        sim.step()

        intruder.move_to((0.0, 0.0, -6.0))
        sim.advance(0.5)

        assert guard.body.position[2] < -1.0

    def test_grace_then_investigate_where_target_went(
        self, sim: Simulation, guard: PatrolAgent
    ) -> None:
        intruder = Target((5.0, 0.0, 0.0))
        sim.add_target(intruder)
        sim.step()
        intruder.move_to((100.0, 0.0, 100.0))
        sim.step()

        sim.advance(4.5)
        assert guard.state is BehaviorState.CHASE
        # Still tracking the target it can no longer see.
        assert guard.body.position[2] > 10.0

        sim.advance(1.0)
        assert guard.state is BehaviorState.INVESTIGATE
        np.testing.assert_allclose(guard.navigation.target, (100.0, 0.0, 100.0))
        assert guard.machine.active_target_id is None

    def test_reacquired_target_cancels_fallback(
        self, sim: Simulation, guard: PatrolAgent
    ) -> None:
        intruder = Target((5.0, 0.0, 0.0))
        sim.add_target(intruder)
        sim.step()
        intruder.move_to((100.0, 0.0, 100.0))
        sim.step()

        sim.advance(2.0)
        intruder.move_to(guard.body.position + np.array([2.0, 0.0, 0.0]))
        sim.advance(4.0)

        assert guard.state is BehaviorState.CHASE
        assert guard.machine.active_target_id == intruder.target_id

    def test_removed_target_is_treated_as_lost(
        self, sim: Simulation, guard: PatrolAgent
    ) -> None:
        intruder = Target((5.0, 0.0, 0.0))
        target_id = sim.add_target(intruder)
        sim.step()

        sim.remove_target(target_id)
        sim.advance(5.2)

        assert guard.state is BehaviorState.INVESTIGATE

    def test_noise_ignored_while_chasing(
        self, sim: Simulation, guard: PatrolAgent
    ) -> None:
        intruder = Target((5.0, 0.0, 0.0))
        sim.add_target(intruder)
        sim.step()
        sim.emit_noise((0.0, 0.0, -3.0))
        assert guard.state is BehaviorState.CHASE


class TestGridNavigation:
    def test_walks_around_a_wall(self, sim: Simulation) -> None:
        walkable = np.ones((12, 12), dtype=bool)
        walkable[5, 0:9] = False
        goal = (9.0, 0.0, 0.0)
        agent = sim.spawn_agent(
            AgentConfig(patrol_points=(goal,)), (0.0, 0.0, 0.0), walkable=walkable
        )

        max_z = 0.0
        for _ in range(30 * 60):
            sim.step()
            max_z = max(max_z, float(agent.body.position[2]))
            if agent.machine.is_waiting:
                break

        assert agent.machine.is_waiting
        assert max_z > 7.0
        assert distance(agent.body.position, goal) <= 1.5 + 0.1


class TestPopulation:
    def test_unreferenced_target_disappears(self, sim: Simulation) -> None:
        target_id = sim.add_target(Target((5.0, 0.0, 0.0)))
        gc.collect()
        assert target_id not in sim.targets

    def test_spawn_twice_rejected(self, sim: Simulation, guard: PatrolAgent) -> None:
        with pytest.raises(ValueError, match="already spawned"):
            sim.spawn(guard)

    def test_despawn(self, sim: Simulation, guard: PatrolAgent) -> None:
        sim.despawn(guard)

        assert guard.agent_id not in sim.agents
        assert sim.perception.listener_count == 0
        with pytest.raises(KeyError):
            sim.despawn(guard)
        with pytest.raises(ValueError, match="despawned"):
            sim.spawn(guard)

    def test_despawned_agent_timers_never_fire(
        self, sim: Simulation, guard: PatrolAgent
    ) -> None:
        sim.emit_noise((0.0, 0.0, 2.0))
        sim.step()
        sim.despawn(guard)

        sim.advance(5.0)

        assert guard.state is BehaviorState.INVESTIGATE
        assert sim.timers.pending == 0


class TestStepping:
    def test_fixed_timestep_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            Simulation(fixed_timestep=0.0)

    def test_update_runs_one_step_per_timestep(self, sim: Simulation) -> None:
        assert sim.update(sim.fixed_timestep) == 1
        assert sim.update(sim.fixed_timestep / 2) == 0
        assert sim.step_count == 1

    def test_update_caps_steps_and_drops_backlog(
        self, sim: Simulation, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.DEBUG, logger="warden.simulation"):
            steps = sim.update(1.0)

        assert steps == sim.max_logic_steps_per_frame
        assert sim.accumulator < sim.fixed_timestep
        assert "Dropped" in caplog.text

    def test_advance_tracks_time(self, sim: Simulation) -> None:
        assert sim.advance(0.5) == 30
        assert sim.time == pytest.approx(0.5)

    def test_run_unpaced_uses_elapsed_time(self) -> None:
        sim = Simulation(fixed_timestep=0.25)
        fake = FakeTime(per_call=0.5)
        with (
            patch("time.perf_counter", side_effect=fake.perf_counter),
            patch("time.sleep", side_effect=fake.sleep),
        ):
            steps = sim.run(2.0, fps=None)

        assert steps == 8
        assert sim.step_count == 8
        assert fake.sleeps == []

    def test_run_sleeps_until_each_frame(self) -> None:
        sim = Simulation(fixed_timestep=0.25)
        fake = FakeTime()
        with (
            patch("time.perf_counter", side_effect=fake.perf_counter),
            patch("time.sleep", side_effect=fake.sleep),
        ):
            steps = sim.run(2.0, fps=4)

        assert steps == 8
        assert fake.sleeps == [0.25] * 8
