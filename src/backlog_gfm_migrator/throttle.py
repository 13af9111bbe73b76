"""Fixed-delay pacing for calls against the Backlog API."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_MIN_INTERVAL_SECONDS = 1.0


@dataclass
class Throttle:
    """Blocking pause between remote calls.

    A min_interval of 0 disables pausing, which is what tests use.
    """

    min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def __post_init__(self) -> None:
        if self.min_interval < 0:
            msg = f"Throttle interval must not be negative: {self.min_interval}"
            raise ValueError(msg)

    def pause(self) -> None:
        if self.min_interval > 0:
            logger.debug(f"Pausing {self.min_interval}s before next API call")
            self.sleep(self.min_interval)

