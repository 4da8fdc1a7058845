"""Best-effort side effects run after the report response is sent."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Effect:
    """A named, zero-argument coroutine factory. Run at most once."""

    name: str
    run: Callable[[], Awaitable[None]]


async def dispatch_effects(effects: list[Effect]) -> int:
    """
    Run each effect once, in order. Failures are logged and never re-raised,
    so one failing channel cannot stop the others.

    Returns the number of effects that completed without error.
    """
    succeeded = 0
    for effect in effects:
        try:
            await effect.run()
        except Exception:
            logger.exception("Side effect %s failed", effect.name)
            continue
        succeeded += 1
    return succeeded
