from __future__ import annotations

import logging
import time
from typing import Callable, Optional, TypeVar

from ..core.constants import DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_BASE_DELAY
from ..core.exceptions import StoreTimeoutError, StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_transient(
    func: Callable[[], T],
    *,
    attempts: int = DEFAULT_RETRY_ATTEMPTS,
    base_delay: float = DEFAULT_RETRY_BASE_DELAY,
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """Run ``func`` and retry it on transient store errors (exponential backoff).

    Only use this for idempotent reads and for check-and-set guarded writes
    (end/approve/reject). Plain ledger writes must not go through here.
    """

    attempts = max(1, int(attempts))
    sleep = sleep or time.sleep
    for attempt in range(attempts):
        try:
            return func()
        except (StoreUnavailableError, StoreTimeoutError) as e:
            if attempt == attempts - 1:
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(
                "Transient store error in %s (%s), retrying in %.2fs (attempt %d/%d)",
                e.operation or "operation",
                e.kind,
                delay,
                attempt + 1,
                attempts,
            )
            sleep(delay)
    raise AssertionError("unreachable")
