"""
GameController — host-facing game layer.

Owns the live GameWorld and the AI search, and talks to a presentation layer
through plain data:
  - pending_events  : game events (match_started, shot, ai_shot, turn_concluded, game_over)
  - physics_events  : sound cues for playback

The host calls:
  ctrl.step()                 — once per rendered frame
  ctrl.shoot(power, rotation) — human shot
  ctrl.place_cue_ball(x, y)   — ball-in-hand placement
  ctrl.get_state()            — read-only snapshot for drawing
"""

import json
import logging
import random
from typing import Optional

from ai import ShotSearch
from config import DIFFICULTY_ITERATIONS, GameConfig
from rules import TurnPhase
from world import GameWorld

logger = logging.getLogger(__name__)


class QueueSoundSink:
    """Collects sound cues into a list the host drains each frame."""

    def __init__(self, queue: list):
        self.queue = queue

    def play(self, name: str, volume: float) -> None:
        self.queue.append({"type": "sound", "name": name, "volume": round(volume, 3)})


class GameController:
    """Frame-driven game-state machine around a GameWorld."""

    def __init__(self, config: Optional[GameConfig] = None,
                 rng: Optional[random.Random] = None):
        self.base_config = config or GameConfig()
        self.config = self.base_config
        self.rng = rng or random.Random()

        # Event queues
        self.pending_events: list[dict] = []
        self.physics_events: list[dict] = []

        # Match setup
        self.vs_ai = False
        self.difficulty: Optional[str] = None
        self.ai_player_index = self.config.ai.player_index

        self._search: Optional[ShotSearch] = None
        self.world = GameWorld(self.config, QueueSoundSink(self.physics_events))

    # ──────────────────────────────────────────────────────────────────────────
    # Game start
    # ──────────────────────────────────────────────────────────────────────────

    def start_game(self, vs_ai: bool = False, difficulty: Optional[str] = None,
                   ai_player_index: Optional[int] = None) -> None:
        """Start a new match; overall scores are reset.

        Args:
            vs_ai:           Player vs computer when True.
            difficulty:      Key of ``DIFFICULTY_ITERATIONS``; ``None`` keeps
                             the configured iteration count.
            ai_player_index: Seat of the AI (0 or 1); ``None`` picks one at random.
        """
        if difficulty is not None and difficulty not in DIFFICULTY_ITERATIONS:
            raise ValueError(f"Unknown difficulty '{difficulty}'")
        if ai_player_index not in (None, 0, 1):
            raise ValueError(f"ai_player_index must be 0 or 1, got {ai_player_index}")

        self.cancel_search()
        self.vs_ai = vs_ai
        self.difficulty = difficulty
        self.config = self.base_config
        if vs_ai and difficulty is not None:
            self.config = self.base_config.with_ai(iterations=DIFFICULTY_ITERATIONS[difficulty])
        if ai_player_index is None:
            ai_player_index = self.rng.randrange(2) if vs_ai else self.config.ai.player_index
        self.ai_player_index = ai_player_index

        self.physics_events.clear()
        self.world = GameWorld(self.config, QueueSoundSink(self.physics_events))
        self.pending_events.append({
            "type": "match_started", "vs_ai": vs_ai,
            "difficulty": difficulty, "ai_player": ai_player_index if vs_ai else None,
        })
        logger.info("new game: vs_ai=%s difficulty=%s ai_player=%s",
                    vs_ai, difficulty, ai_player_index if vs_ai else None)

    # ──────────────────────────────────────────────────────────────────────────
    # Main loop
    # ──────────────────────────────────────────────────────────────────────────

    @property
    def is_ai_turn(self) -> bool:
        return self.vs_ai and self.world.current_player_index == self.ai_player_index

    @property
    def ai_thinking(self) -> bool:
        return self._search is not None

    def step(self) -> None:
        """Advance AI thinking and physics by one frame."""
        if self._search is None and self.is_ai_turn and not self.world.is_balls_moving \
                and self.world.phase is TurnPhase.AIMING:
            self._search = ShotSearch(self.world, self.config, self.rng)

        if self._search is not None:
            budget = self.config.ai.iterations_per_frame or None
            if self._search.step(budget):
                search, self._search = self._search, None
                if search.play_turn():
                    self.pending_events.append({
                        "type": "ai_shot",
                        "power": round(search.best.power, 4),
                        "rotation": round(search.best.rotation, 6),
                        "evaluation": round(search.best.evaluation, 3),
                    })
            return

        result = self.world.tick()
        if result is not None:
            self._on_turn_finished(result)

    def _on_turn_finished(self, result) -> None:
        self.pending_events.append({
            "type": "turn_concluded",
            "player": result.player_index,
            "valid": result.valid,
            "pocketed": result.pocketed,
            "next_player": result.next_player_index,
        })
        if result.game_over:
            self.pending_events.append({
                "type": "game_over",
                "winner": result.winner_index,
                "overall": [p.overall_score for p in self.world.players],
            })

    def cancel_search(self) -> None:
        if self._search is not None:
            self._search.cancel()
            self._search = None

    # ──────────────────────────────────────────────────────────────────────────
    # Human commands
    # ──────────────────────────────────────────────────────────────────────────

    def shoot(self, power: float, rotation: float) -> bool:
        if self.is_ai_turn:
            logger.debug("shoot rejected: AI to play")
            return False
        if not self.world.shoot(power, rotation):
            return False
        self.pending_events.append({"type": "shot", "power": power, "rotation": rotation})
        return True

    def place_cue_ball(self, x: float, y: float) -> bool:
        if self.is_ai_turn:
            logger.debug("place_cue_ball rejected: AI to play")
            return False
        return self.world.place_cue_ball((x, y))

    # ──────────────────────────────────────────────────────────────────────────
    # State / JSON commands
    # ──────────────────────────────────────────────────────────────────────────

    def get_state(self) -> dict:
        state = self.world.to_dict()
        state["vs_ai"] = self.vs_ai
        state["ai_player"] = self.ai_player_index if self.vs_ai else None
        state["ai_thinking"] = self.ai_thinking
        return state

    def get_state_json(self) -> str:
        return json.dumps(self.get_state(), separators=(',', ':'))

    def execute_command(self, text: str) -> bool:
        """Run one JSON command. Returns False if it was malformed or rejected.

        Commands::

            {"cmd": "shoot", "power": 30, "rotation": 0.1}
            {"cmd": "place", "x": 400, "y": 400}
            {"cmd": "new_game", "vs_ai": true, "difficulty": "hard", "ai_player": 1}
        """
        try:
            cmd = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.warning("command JSON parse error: %s", exc)
            return False
        if not isinstance(cmd, dict):
            logger.warning("command must be a JSON object, got %r", cmd)
            return False

        name = cmd.get("cmd")
        try:
            if name == "shoot":
                return self.shoot(float(cmd["power"]), float(cmd["rotation"]))
            if name == "place":
                return self.place_cue_ball(float(cmd["x"]), float(cmd["y"]))
            if name == "new_game":
                self.start_game(vs_ai=bool(cmd.get("vs_ai", False)),
                                difficulty=cmd.get("difficulty"),
                                ai_player_index=cmd.get("ai_player"))
                return True
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("bad %s command: %s", name, exc)
            return False

        logger.warning("unknown command %r", name)
        return False
