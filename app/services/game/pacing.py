"""Thinking-time pauses so bot play and card draws are watchable.

Simulations skip every pause.
"""

import asyncio
import random

from app.config import Settings


async def bot_pause(settings: Settings, rng: random.Random, is_simulation: bool) -> None:
    if is_simulation or settings.BOT_MAX_DELAY_MS <= 0:
        return
    delay_ms = rng.uniform(settings.BOT_MIN_DELAY_MS, settings.BOT_MAX_DELAY_MS)
    await asyncio.sleep(delay_ms / 1000)


async def card_pause(settings: Settings, rng: random.Random, is_simulation: bool) -> None:
    if is_simulation or settings.CARD_DELAY_MAX_MS <= 0:
        return
    await asyncio.sleep(rng.uniform(0, settings.CARD_DELAY_MAX_MS) / 1000)
