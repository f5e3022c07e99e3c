"""General MIDI percussion shared by the reference genres."""
from __future__ import annotations

from stori_arranger.services.composer import BarContext

CHANNEL = 9

KICK = 36
SNARE = 38
CLOSED_HAT = 42
PEDAL_HAT = 44
RIDE = 51
CRASH = 49
SIDE_STICK = 37


def hit(ctx: BarContext, pitch: int, tick: int, velocity: float, length: int = 60) -> None:
    ctx.builder.emit_note(CHANNEL, pitch, int(velocity), tick, length)


def backbeat(ctx: BarContext, level: float, hat_steps: int = 8) -> None:
    """Kick on the odd beats, snare on the even beats, straight hats."""
    rng = ctx.rng
    for beat in range(ctx.clock.beats_per_bar):
        pitch = KICK if beat % 2 == 0 else SNARE
        hit(ctx, pitch, ctx.beat(beat), (95 + rng.randint(-5, 10)) * level)
    step = ctx.clock.ticks_per_bar // hat_steps
    for i in range(hat_steps):
        accent = 65 if i % 4 == 0 else 50
        hit(ctx, CLOSED_HAT, ctx.bar_start + i * step, max(25, accent * level + rng.randint(-5, 5)), 15)


def shuffle(ctx: BarContext, level: float, swing: float) -> None:
    """Triplet-feel ride with kick on 1 and 3 and a late backbeat snare.

    *swing* in 0..1 moves the off-beat from the straight eighth toward the
    last triplet.
    """
    rng = ctx.rng
    beat = ctx.clock.ticks_per_beat
    offbeat = int(beat / 2 + (beat / 6) * swing)
    for b in range(ctx.clock.beats_per_bar):
        start = ctx.beat(b)
        hit(ctx, RIDE, start, (70 + rng.randint(-5, 5)) * level, 30)
        hit(ctx, RIDE, start + offbeat, (50 + rng.randint(-5, 5)) * level, 30)
        if b % 2 == 0:
            hit(ctx, KICK, start, (90 + rng.randint(-5, 5)) * level)
        else:
            hit(ctx, SNARE, start + rng.randint(0, 15), (85 + rng.randint(-5, 5)) * level)


def waltz(ctx: BarContext, level: float) -> None:
    """Boom-chick-chick: kick on 1, side stick on 2 and 3."""
    rng = ctx.rng
    hit(ctx, KICK, ctx.beat(0), (90 + rng.randint(-5, 5)) * level)
    for b in range(1, ctx.clock.beats_per_bar):
        hit(ctx, SIDE_STICK, ctx.beat(b), (60 + rng.randint(-5, 5)) * level)
        hit(ctx, PEDAL_HAT, ctx.beat(b), (45 + rng.randint(-5, 5)) * level, 15)
