"""Bots: automated participants that play indistinguishably from humans."""

from bots.driver import BotTurnManager
from bots.policy import (
    CREW_CLUES,
    IMPOSTOR_CLUES,
    BOT_NAMES,
    choose_clue,
    choose_vote_target,
    vote_candidates,
    pick_bot_name,
)
from bots.timing import BotTiming, INSTANT, get_bot_timing

__all__ = [
    "BotTurnManager",
    "CREW_CLUES",
    "IMPOSTOR_CLUES",
    "BOT_NAMES",
    "choose_clue",
    "choose_vote_target",
    "vote_candidates",
    "pick_bot_name",
    "BotTiming",
    "INSTANT",
    "get_bot_timing",
]
