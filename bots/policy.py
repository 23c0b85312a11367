"""Bot decisions: what clue to give, whom to vote for, what to be called.

Bots never look at the secret word. Crew bots and impostor bots only differ
in which vocabulary they draw from and in how they pick a vote target.
"""

import random
from typing import Iterable, Optional

from game.state import Participant

# Generic clues vague enough to fit any word
CREW_CLUES = (
    "Interesting",
    "Common",
    "Well-known",
    "Normal",
    "Typical",
    "Obvious",
    "Familiar",
    "Popular",
    "Classic",
    "Simple",
    "Everyday",
    "Basic",
    "Frequent",
    "Usual",
    "Regular",
)

# Impostor clues (even more evasive)
IMPOSTOR_CLUES = (
    "Hmm...",
    "Curious",
    "Thinking...",
    "Tricky",
    "Complex",
    "Strange",
    "Unique",
    "Special",
    "Mysterious",
    "Abstract",
)

BOT_NAMES = (
    "RoBot_X",
    "CyberBot",
    "NeonBot",
    "PixelBot",
    "GlitchBot",
    "ShadowBot",
    "TurboBot",
    "ZenBot",
    "NovaBot",
    "VortexBot",
)


def choose_clue(is_impostor: bool, rng: random.Random) -> str:
    """Draw a clue uniformly from the vocabulary matching the bot's role."""
    return rng.choice(IMPOSTOR_CLUES if is_impostor else CREW_CLUES)


def vote_candidates(bot: Participant, participants: Iterable[Participant]) -> list[Participant]:
    """
    Who the bot may vote for: active players other than itself.
    An impostor bot keeps only non-impostors unless that leaves nobody.
    """
    eligible = sorted(
        (p for p in participants if p.is_active and p.user_id != bot.user_id),
        key=lambda p: p.id,
    )
    if bot.is_impostor:
        crew = [p for p in eligible if not p.is_impostor]
        if crew:
            return crew
    return eligible


def choose_vote_target(
    bot: Participant,
    participants: Iterable[Participant],
    rng: random.Random,
) -> Optional[Participant]:
    """Random pick among vote_candidates; None when nobody is eligible."""
    candidates = vote_candidates(bot, participants)
    if not candidates:
        return None
    return rng.choice(candidates)


def pick_bot_name(used_names: Iterable[str], rng: random.Random) -> str:
    """An unused name from BOT_NAMES, or Bot_<n> once they are all taken."""
    used = set(used_names)
    available = [n for n in BOT_NAMES if n not in used]
    if available:
        return rng.choice(available)
    return f"Bot_{rng.randrange(1000)}"
