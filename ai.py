"""
AI opponent — shot evaluation and stochastic hill-climbing search.

Every candidate ``(power, rotation)`` is scored by playing it out on a private
world restored from a snapshot of the live table, concluding the turn and
applying ``ShotPolicy.evaluate``. The search mutates the best candidate most
iterations and restarts from a random one every ``restart_interval``.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from config import AIConfig, GameConfig
from vector2 import Vector2
from world import GameWorld

logger = logging.getLogger(__name__)


@dataclass
class Candidate:
    power: float = 50.0
    rotation: float = 0.0        # radians, 0 = towards +x
    evaluation: float = 0.0


class ShotPolicy:
    """Scalar score of a concluded turn; higher is better."""

    def __init__(self, config: Optional[AIConfig] = None):
        self.config = config or AIConfig()

    @staticmethod
    def spread(world: GameWorld) -> float:
        """Sum of centre distances over every unordered ball pair."""
        if len(world.balls) < 2:
            return 0.0
        pos = np.array([[b.position.x, b.position.y] for b in world.balls])
        diff = pos[:, None, :] - pos[None, :, :]
        dist = np.linalg.norm(diff, axis=-1)
        i, j = np.triu_indices(len(pos), k=1)
        return float(dist[i, j].sum())

    def evaluate(self, world: GameWorld) -> float:
        cfg = self.config
        evaluation = 1.0 + self.spread(world) * cfg.ball_distance_bonus

        if world.is_turn_valid:
            evaluation += cfg.valid_turn_bonus
            evaluation += cfg.pocketed_ball_bonus * world.num_pocketed_balls_on_turn
            if world.is_game_over:
                evaluation += cfg.game_won_bonus
        else:
            evaluation -= cfg.invalid_turn_penalty
            if world.is_game_over:
                evaluation -= cfg.game_loss_penalty
        return evaluation


def place_ball_in_hand(world: GameWorld, step: Optional[float] = None) -> Vector2:
    """
    Put the cue ball at the first legal spot rightwards of the default spot.

    If the default row is blocked all the way to the right cushion, the scan
    continues on rows one diameter below, then above.
    """
    cfg = world.config
    step = step or cfg.ai.placement_step
    start = Vector2.copy(cfg.layout.cue_ball)
    engine = world.engine

    rows = [start.y]
    offset = cfg.ball.diameter
    while start.y + offset < engine.y_max or start.y - offset > engine.y_min:
        rows.extend([start.y + offset, start.y - offset])
        offset += cfg.ball.diameter

    for row, y in enumerate(rows):
        x = start.x if row == 0 else engine.x_min + cfg.ball.radius + step
        while x + cfg.ball.radius < engine.x_max:
            pos = Vector2(x, y)
            if world.is_valid_cue_ball_position(pos):
                world.place_cue_ball(pos)
                return pos
            x += step
    raise RuntimeError("no legal cue ball position on the table")


class ShotSearch:
    """
    One AI decision as a resumable task.

    ``step(budget)`` runs at most ``budget`` iterations (all remaining if
    None) and returns True once the search is finished; ``play_turn`` then
    shoots the best candidate on the live world.
    """

    def __init__(self, world: GameWorld, config: Optional[GameConfig] = None,
                 rng: Optional[random.Random] = None):
        self.config = config or world.config
        self.ai = self.config.ai
        self.rng = rng or random.Random()
        self.policy = ShotPolicy(self.ai)
        self.world = world

        if world.is_ball_in_hand:
            pos = place_ball_in_hand(world)
            logger.debug("ball in hand placed at (%.1f, %.1f)", pos.x, pos.y)

        self._initial = world.snapshot()
        self._sim = GameWorld.from_state(self._initial, self.config)

        self.iteration = 0
        self.candidates: List[Candidate] = []
        self.best_history: List[float] = []
        self.best: Optional[Candidate] = None
        self._current = self.random_candidate()
        self._cancelled = False
        self._played = False

    # ── State ─────────────────────────────────────────────────────────────────

    @property
    def finished(self) -> bool:
        return self._cancelled or self.iteration >= self.ai.iterations

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    # ── Candidate generation ──────────────────────────────────────────────────

    def random_candidate(self) -> Candidate:
        low, high = self.ai.random_power_range
        return Candidate(self.rng.uniform(low, high),
                         self.rng.uniform(0.0, 2 * math.pi))

    def mutate(self, candidate: Candidate) -> Candidate:
        var = self.ai.power_mutation_variance
        power = candidate.power + self.rng.uniform(-var, var)
        power = max(self.ai.min_shot_power, min(self.ai.max_shot_power, power))

        if candidate.evaluation > 0:
            rotation = candidate.rotation + self.rng.uniform(-math.pi, math.pi) / candidate.evaluation
        else:
            rotation = self.rng.uniform(-math.pi, math.pi)
        return Candidate(power, rotation)

    def next_candidate(self) -> Candidate:
        if self.iteration % self.ai.restart_interval == 0:
            return self.random_candidate()
        return self.mutate(self.best)

    # ── Search loop ───────────────────────────────────────────────────────────

    def evaluate(self, candidate: Candidate) -> float:
        """Play ``candidate`` on a fresh copy of the starting table."""
        self._sim.restore(self._initial)
        self._sim.play_shot(candidate.power, candidate.rotation)
        candidate.evaluation = self.policy.evaluate(self._sim)
        return candidate.evaluation

    def step(self, budget: Optional[int] = None) -> bool:
        done = 0
        while not self.finished and (budget is None or done < budget):
            current = self._current
            self.evaluate(current)
            self.candidates.append(current)
            if self.best is None or current.evaluation > self.best.evaluation:
                self.best = current
            self.best_history.append(self.best.evaluation)

            self.iteration += 1
            self._current = self.next_candidate()
            done += 1

        if self.finished and not self._cancelled:
            logger.debug("search done: %d iterations, best power=%.2f rot=%.3f eval=%.1f",
                         self.iteration, self.best.power, self.best.rotation,
                         self.best.evaluation)
        return self.finished

    def run(self) -> Candidate:
        self.step()
        return self.best

    def play_turn(self) -> bool:
        """Shoot the best candidate on the live world (once)."""
        if self._played or self._cancelled or self.best is None:
            return False
        self._played = True
        return self.world.shoot(self.best.power, self.best.rotation)


def choose_shot(world: GameWorld, rng: Optional[random.Random] = None) -> Candidate:
    """Run a full search and shoot the winner on ``world``."""
    search = ShotSearch(world, rng=rng)
    best = search.run()
    search.play_turn()
    return best
