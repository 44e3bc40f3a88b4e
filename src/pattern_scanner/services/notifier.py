"""Breakout notifications driven by registry change events."""

import threading
import logging

from pattern_scanner.models.patterns import BreakoutStatus, ResultSetChanged
from pattern_scanner.services.catalog import get_catalog_entry

logger = logging.getLogger(__name__)

CONFIRMED_STATUSES = {BreakoutStatus.CONFIRMED, BreakoutStatus.CONFIRMED_NEW}


class BreakoutNotifier:
    """Reports each confirmed breakout once per (symbol, status) pair.

    Delivery is logging only; presentation layers subscribe to the registry
    for anything richer.
    """

    def __init__(self):
        self._seen: set[str] = set()
        self._lock = threading.Lock()
        self.notifications: list[dict] = []

    def __call__(self, event: ResultSetChanged):
        self.check_for_new_breakouts(event)

    def check_for_new_breakouts(self, event: ResultSetChanged) -> list[dict]:
        fresh: list[dict] = []

        for instrument in event.instruments:
            match = instrument.current_match
            if match is None or match.breakout_status not in CONFIRMED_STATUSES:
                continue

            key = f"{instrument.symbol}-{match.breakout_status.value}"
            with self._lock:
                if key in self._seen:
                    continue
                self._seen.add(key)

            entry = get_catalog_entry(match.pattern_type)
            notification = {
                "symbol": instrument.symbol,
                "name": instrument.name,
                "pattern": entry.name,
                "status": match.breakout_status.value,
                "target1": match.target1,
            }
            logger.info(
                f"New breakout: {instrument.name} broke out of {entry.name} "
                f"({match.breakout_status.value}), target {match.target1:.6f}"
            )
            fresh.append(notification)

        with self._lock:
            self.notifications.extend(fresh)
        return fresh
