"""
2D 8-Ball Physics Engine
Per-tick friction, ball-ball and ball-cushion collision, pocket detection.

All constants come from ``config.GameConfig`` and are tuned per tick, not per
second: one ``PhysicsEngine.update`` call is one rendered frame.
"""

import enum
from typing import List, Optional

from config import GameConfig
from vector2 import Vector2

# Centre distance below which a ball pair is treated as coincident
COINCIDENT_EPSILON: float = 1e-9


class Color(enum.Enum):
    WHITE = "white"
    BLACK = "black"
    RED = "red"
    YELLOW = "yellow"


class Ball:
    """Billiard ball; identity is the object itself."""

    __slots__ = ("color", "_position", "_velocity", "_moving", "_visible")

    def __init__(self, color: Color, position, velocity=None, visible: bool = True):
        self.color = color
        self._position = Vector2.copy(position)
        self._velocity = Vector2.zero()
        self._moving = False
        self._visible = visible
        if velocity is not None:
            self.velocity = velocity

    def __repr__(self) -> str:
        return (f"Ball({self.color.value}, pos=({self._position.x:.1f}, {self._position.y:.1f}), "
                f"v=({self._velocity.x:.2f}, {self._velocity.y:.2f}), visible={self._visible})")

    # ── State ─────────────────────────────────────────────────────────────────

    @property
    def position(self) -> Vector2:
        return Vector2.copy(self._position)

    @position.setter
    def position(self, value) -> None:
        self._position = Vector2.copy(value)

    @property
    def velocity(self) -> Vector2:
        return Vector2.copy(self._velocity)

    @velocity.setter
    def velocity(self, value) -> None:
        self._velocity = Vector2.copy(value)
        self._moving = self._velocity.length > 0

    @property
    def moving(self) -> bool:
        return self._moving

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def speed(self) -> float:
        return self._velocity.length

    def next_position(self, friction: float) -> Vector2:
        """Where the ball will be after one more tick (friction included)."""
        return self._position.add(self._velocity.mult(1 - friction))

    def copy(self) -> "Ball":
        nb = Ball(self.color, self._position, visible=self._visible)
        nb._velocity = Vector2.copy(self._velocity)
        nb._moving = self._moving
        return nb

    # ── Commands ──────────────────────────────────────────────────────────────

    def shoot(self, power: float, angle: float) -> None:
        self._velocity = Vector2.from_angle(power, angle)
        self._moving = True

    def show(self, position) -> None:
        self._position = Vector2.copy(position)
        self._velocity = Vector2.zero()
        self._moving = False
        self._visible = True

    def hide(self) -> None:
        self._velocity = Vector2.zero()
        self._moving = False
        self._visible = False

    def update(self, friction: float, min_velocity: float) -> None:
        """Decay velocity, then advance by the decayed velocity."""
        if not self._moving:
            return
        self._velocity.mult_by(1 - friction)
        self._position.add_to(self._velocity)
        if self._velocity.length < min_velocity:
            self._velocity = Vector2.zero()
            self._moving = False


class PhysicsEngine:
    """Billiards table physics in table pixel space."""

    def __init__(self, config: Optional[GameConfig] = None):
        self.config = config or GameConfig()
        table = self.config.table
        self.diameter = self.config.ball.diameter
        self.radius = self.diameter / 2
        self.friction = self.config.physics.friction
        self.collision_loss = self.config.physics.collision_loss
        self.min_velocity = self.config.ball.min_velocity
        # Play-area edges (inner side of the cushions)
        self.x_min = table.cushion_width
        self.x_max = table.width - table.cushion_width
        self.y_min = table.cushion_width
        self.y_max = table.height - table.cushion_width
        self.pockets = [Vector2.copy(p) for p in table.pockets]
        self.pocket_radius = table.pocket_radius
        self.events: list = []

    # ──────────────────────────────────────────
    # Table geometry
    # ──────────────────────────────────────────
    def is_outside_top(self, position: Vector2) -> bool:
        return position.y - self.radius <= self.y_min

    def is_outside_left(self, position: Vector2) -> bool:
        return position.x - self.radius <= self.x_min

    def is_outside_right(self, position: Vector2) -> bool:
        return position.x + self.radius >= self.x_max

    def is_outside_bottom(self, position: Vector2) -> bool:
        return position.y + self.radius >= self.y_max

    def is_inside_pocket(self, position: Vector2) -> bool:
        return any(position.dist_from(p) <= self.pocket_radius for p in self.pockets)

    def is_inside_table(self, position: Vector2) -> bool:
        """True if a ball centred here clears every cushion and pocket."""
        return not (self.is_inside_pocket(position)
                    or self.is_outside_top(position)
                    or self.is_outside_left(position)
                    or self.is_outside_right(position)
                    or self.is_outside_bottom(position))

    # ──────────────────────────────────────────
    # Ball-Ball Collision
    # ──────────────────────────────────────────
    def resolve_ball_collision(self, first: Ball, second: Ball) -> bool:
        """
        Resolve an equal-mass collision with energy loss.

        Normal velocity components are exchanged, tangential ones kept, then
        both velocities are scaled by ``1 - collision_loss``. Returns True
        if the pair actually collided (touching and at least one moving).
        """
        if not first.visible or not second.visible:
            return False

        n = first.position.subtract(second.position)
        dist = n.length
        if dist > self.diameter:
            return False

        if dist < COINCIDENT_EPSILON:
            un = Vector2(1.0, 0.0)
        else:
            un = n.mult(1 / dist)

        # Separate overlapping balls, half each
        mtd = un.mult(self.diameter - dist)
        first.position = first.position.add(mtd.mult(0.5))
        second.position = second.position.subtract(mtd.mult(0.5))

        if not first.moving and not second.moving:
            return False

        ut = Vector2(-un.y, un.x)
        v1, v2 = first.velocity, second.velocity
        v1n, v1t = un.dot(v1), ut.dot(v1)
        v2n, v2t = un.dot(v2), ut.dot(v2)

        keep = 1 - self.collision_loss
        first.velocity = un.mult(v2n).add(ut.mult(v1t)).mult(keep)
        second.velocity = un.mult(v1n).add(ut.mult(v2t)).mult(keep)
        return True

    # ──────────────────────────────────────────
    # Cushion Collision
    # ──────────────────────────────────────────
    def resolve_cushion_collision(self, ball: Ball) -> bool:
        """
        Bounce a ball whose next-tick position would cross a cushion.

        Each of the four borders is tested independently against the
        projected position; on violation the ball is clamped so its edge
        touches the cushion and the perpendicular velocity is inverted.
        The energy loss is applied once even for a corner double-hit.
        """
        if not ball.visible or not ball.moving:
            return False

        collided = False
        if self.is_outside_top(ball.next_position(self.friction)):
            ball.position = Vector2(ball.position.x, self.y_min + self.radius)
            v = ball.velocity
            ball.velocity = Vector2(v.x, -v.y)
            collided = True

        if self.is_outside_left(ball.next_position(self.friction)):
            ball.position = Vector2(self.x_min + self.radius, ball.position.y)
            v = ball.velocity
            ball.velocity = Vector2(-v.x, v.y)
            collided = True

        if self.is_outside_right(ball.next_position(self.friction)):
            ball.position = Vector2(self.x_max - self.radius, ball.position.y)
            v = ball.velocity
            ball.velocity = Vector2(-v.x, v.y)
            collided = True

        if self.is_outside_bottom(ball.next_position(self.friction)):
            ball.position = Vector2(ball.position.x, self.y_max - self.radius)
            v = ball.velocity
            ball.velocity = Vector2(v.x, -v.y)
            collided = True

        if collided:
            ball.velocity = ball.velocity.mult(1 - self.collision_loss)
        return collided

    # ──────────────────────────────────────────
    # Pockets
    # ──────────────────────────────────────────
    def resolve_ball_in_pocket(self, ball: Ball) -> bool:
        if ball.visible and self.is_inside_pocket(ball.position):
            ball.hide()
            return True
        return False

    # ──────────────────────────────────────────
    # Main Update Loop
    # ──────────────────────────────────────────
    def handle_collisions(self, balls: List[Ball]) -> None:
        for i in range(len(balls)):
            first = balls[i]
            if self.resolve_cushion_collision(first):
                self.events.append({"type": "cushion", "ball": first,
                                    "speed": first.speed})
            for j in range(i + 1, len(balls)):
                second = balls[j]
                if self.resolve_ball_collision(first, second):
                    self.events.append({
                        "type": "ball_ball", "ball1": first, "ball2": second,
                        "force": first.speed + second.speed,
                    })

    def update(self, balls: List[Ball]) -> None:
        """Advance the table by one tick: collide, move, then drop into pockets."""
        self.events.clear()
        self.handle_collisions(balls)

        for ball in balls:
            ball.update(self.friction, self.min_velocity)

        for ball in balls:
            if self.resolve_ball_in_pocket(ball):
                self.events.append({"type": "pocket", "ball": ball})

    def simulate(self, balls: List[Ball], max_ticks: int = 100_000) -> int:
        """
        Run until every ball stops or ``max_ticks`` is reached.

        Returns:
            Number of ticks simulated.
        """
        ticks = 0
        while ticks < max_ticks and any(b.moving for b in balls):
            self.update(balls)
            ticks += 1
        return ticks
