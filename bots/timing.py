"""Bot timing configuration: how long bots 'think' before acting."""

import os
import random
from dataclasses import dataclass

# Env var names (seconds, floats)
ENV_BOT_TRIGGER_DELAY = "BOT_TRIGGER_DELAY"
ENV_BOT_CLUE_DELAY_MIN = "BOT_CLUE_DELAY_MIN"
ENV_BOT_CLUE_DELAY_MAX = "BOT_CLUE_DELAY_MAX"
ENV_BOT_VOTE_DELAY_MIN = "BOT_VOTE_DELAY_MIN"
ENV_BOT_VOTE_DELAY_MAX = "BOT_VOTE_DELAY_MAX"

DEFAULT_TRIGGER_DELAY = 0.5
DEFAULT_CLUE_DELAY = (1.0, 3.0)
DEFAULT_VOTE_DELAY = (1.0, 4.0)


@dataclass(frozen=True)
class BotTiming:
    """Delay bounds in seconds. Delays are drawn uniformly from [min, max]."""

    trigger_delay: float = DEFAULT_TRIGGER_DELAY
    clue_delay: tuple[float, float] = DEFAULT_CLUE_DELAY
    vote_delay: tuple[float, float] = DEFAULT_VOTE_DELAY

    def __post_init__(self) -> None:
        if self.trigger_delay < 0:
            raise ValueError("trigger_delay must be >= 0")
        for name in ("clue_delay", "vote_delay"):
            low, high = getattr(self, name)
            if low < 0 or high < low:
                raise ValueError(f"{name} must satisfy 0 <= min <= max, got ({low}, {high})")

    def random_clue_delay(self, rng: random.Random) -> float:
        return rng.uniform(*self.clue_delay)

    def random_vote_delay(self, rng: random.Random) -> float:
        return rng.uniform(*self.vote_delay)


# No delays at all; handy for tests and local scripting
INSTANT = BotTiming(trigger_delay=0.0, clue_delay=(0.0, 0.0), vote_delay=(0.0, 0.0))


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}") from None


def get_bot_timing() -> BotTiming:
    """
    Build BotTiming from env (BOT_TRIGGER_DELAY, BOT_CLUE_DELAY_MIN, ...),
    falling back to the defaults for anything unset.
    """
    return BotTiming(
        trigger_delay=_env_float(ENV_BOT_TRIGGER_DELAY, DEFAULT_TRIGGER_DELAY),
        clue_delay=(
            _env_float(ENV_BOT_CLUE_DELAY_MIN, DEFAULT_CLUE_DELAY[0]),
            _env_float(ENV_BOT_CLUE_DELAY_MAX, DEFAULT_CLUE_DELAY[1]),
        ),
        vote_delay=(
            _env_float(ENV_BOT_VOTE_DELAY_MIN, DEFAULT_VOTE_DELAY[0]),
            _env_float(ENV_BOT_VOTE_DELAY_MAX, DEFAULT_VOTE_DELAY[1]),
        ),
    )
