"""
Table, ball, physics, layout and AI configuration.

The simulation consumes a ``GameConfig`` and never mutates it. Defaults are
the pixel-space values of the classic 8-ball table (1500 x 825 play field,
38 px balls); all velocities and friction constants are per tick.

JSON overrides may be partial and nested::

    {"physics": {"friction": 0.02}, "ai": {"iterations": 100}}
"""

import json
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path


# ── Difficulty presets (search iterations per AI decision) ────────────────────
DIFFICULTY_ITERATIONS = {
    "easy":   30,
    "medium": 50,
    "hard":   100,
    "insane": 700,
}


@dataclass(frozen=True)
class TableConfig:
    width: float = 1500.0
    height: float = 825.0
    cushion_width: float = 57.0
    pocket_radius: float = 48.0
    pockets: tuple = (
        (62.0, 62.0),      # top-left
        (750.0, 32.0),     # top-centre
        (1435.0, 62.0),    # top-right
        (62.0, 762.0),     # bottom-left
        (750.0, 794.0),    # bottom-centre
        (1435.0, 762.0),   # bottom-right
    )


@dataclass(frozen=True)
class BallConfig:
    diameter: float = 38.0
    min_velocity: float = 0.05               # below this a ball stops
    max_expected_collision_force: float = 70.0

    @property
    def radius(self) -> float:
        return self.diameter / 2


@dataclass(frozen=True)
class PhysicsConfig:
    friction: float = 0.018         # velocity decay per tick
    collision_loss: float = 0.018   # velocity decay per ball/cushion impact


@dataclass(frozen=True)
class LayoutConfig:
    red: tuple = (
        (1056.0, 433.0), (1090.0, 374.0), (1126.0, 393.0), (1126.0, 472.0),
        (1162.0, 335.0), (1162.0, 374.0), (1162.0, 452.0),
    )
    yellow: tuple = (
        (1022.0, 413.0), (1056.0, 393.0), (1090.0, 452.0), (1126.0, 354.0),
        (1126.0, 433.0), (1162.0, 413.0), (1162.0, 491.0),
    )
    eight_ball: tuple = (1090.0, 413.0)
    cue_ball: tuple = (413.0, 413.0)


@dataclass(frozen=True)
class AIConfig:
    iterations: int = 30
    iterations_per_frame: int = 0       # 0 = whole search in one frame
    player_index: int = 1
    ball_distance_bonus: float = 1 / 5800
    valid_turn_bonus: float = 5000.0
    pocketed_ball_bonus: float = 2000.0
    invalid_turn_penalty: float = 3000.0
    game_won_bonus: float = 50000.0
    game_loss_penalty: float = 50000.0
    power_mutation_variance: float = 15.0
    min_shot_power: float = 10.0
    max_shot_power: float = 50.0
    random_power_range: tuple = (1.0, 76.0)
    restart_interval: int = 10
    placement_step: float = 5.0


@dataclass(frozen=True)
class GameConfig:
    table: TableConfig = field(default_factory=TableConfig)
    ball: BallConfig = field(default_factory=BallConfig)
    physics: PhysicsConfig = field(default_factory=PhysicsConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    ai: AIConfig = field(default_factory=AIConfig)

    def __post_init__(self):
        _validate(self)

    # ── (De)serialisation ─────────────────────────────────────────────────────

    @classmethod
    def from_dict(cls, data: dict) -> "GameConfig":
        """Build a config from a (possibly partial) nested dict."""
        sections = {f.name: f for f in fields(cls)}
        unknown = set(data) - set(sections)
        if unknown:
            raise ValueError(f"Unknown config section(s): {sorted(unknown)}")

        kwargs = {}
        for name, section_data in data.items():
            if not isinstance(section_data, dict):
                raise ValueError(f"Config section '{name}' must be an object")
            section_cls = sections[name].default_factory
            kwargs[name] = _build_section(section_cls, name, section_data)
        return cls(**kwargs)

    def to_dict(self) -> dict:
        return asdict(self)

    def with_ai(self, **changes) -> "GameConfig":
        """Return a copy with some AI settings replaced."""
        return replace(self, ai=replace(self.ai, **changes))


def load_config(path) -> GameConfig:
    """Load a JSON config file; missing keys keep their defaults."""
    with open(Path(path), "r", encoding="utf-8") as f:
        data = json.load(f)
    return GameConfig.from_dict(data)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _build_section(section_cls, name: str, data: dict):
    known = {f.name: f for f in fields(section_cls)}
    unknown = set(data) - set(known)
    if unknown:
        raise ValueError(f"Unknown key(s) in '{name}': {sorted(unknown)}")

    kwargs = {}
    for key, value in data.items():
        default = known[key].default
        if isinstance(default, tuple):
            kwargs[key] = _as_tuple(value, f"{name}.{key}")
        else:
            kwargs[key] = value
    return section_cls(**kwargs)


def _as_tuple(value, label: str) -> tuple:
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"'{label}' must be a list")
    return tuple(_as_tuple(v, label) if isinstance(v, (list, tuple)) else float(v)
                 for v in value)


def _validate(cfg: GameConfig) -> None:
    if cfg.ball.diameter <= 0:
        raise ValueError("ball.diameter must be positive")
    if not 0.0 <= cfg.physics.friction < 1.0:
        raise ValueError("physics.friction must be in [0, 1)")
    if not 0.0 <= cfg.physics.collision_loss < 1.0:
        raise ValueError("physics.collision_loss must be in [0, 1)")
    if cfg.ai.iterations <= 0:
        raise ValueError("ai.iterations must be positive")
    if cfg.ai.iterations_per_frame < 0:
        raise ValueError("ai.iterations_per_frame must be >= 0")
    if cfg.ai.min_shot_power > cfg.ai.max_shot_power:
        raise ValueError("ai.min_shot_power exceeds ai.max_shot_power")
    if cfg.ai.restart_interval <= 0:
        raise ValueError("ai.restart_interval must be positive")
    if cfg.ai.placement_step <= 0:
        raise ValueError("ai.placement_step must be positive")
    if len(cfg.ai.random_power_range) != 2:
        raise ValueError("ai.random_power_range must be [low, high]")
    if cfg.ai.player_index not in (0, 1):
        raise ValueError("ai.player_index must be 0 or 1")
    for label, positions in (("layout.red", cfg.layout.red),
                             ("layout.yellow", cfg.layout.yellow),
                             ("table.pockets", cfg.table.pockets)):
        if any(len(p) != 2 for p in positions):
            raise ValueError(f"'{label}' entries must be [x, y] pairs")
