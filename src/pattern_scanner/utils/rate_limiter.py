import time
import threading
import logging

logger = logging.getLogger(__name__)


class RequestWeightLimiter:
    """Token bucket over an exchange's per-minute request-weight budget.

    Binance charges each endpoint a weight (the full 24h ticker costs far more
    than a single klines call), so callers acquire the endpoint's weight
    rather than one token per request.
    """

    def __init__(self, weight_per_minute: int):
        self.capacity = float(weight_per_minute)
        self.available = float(weight_per_minute)
        self.refill_per_second = weight_per_minute / 60.0
        self.last_refill = time.monotonic()
        self.lock = threading.Lock()

    def _refill(self):
        now = time.monotonic()
        self.available = min(self.capacity, self.available + (now - self.last_refill) * self.refill_per_second)
        self.last_refill = now

    def acquire(self, weight: int = 1, timeout: float = 60.0) -> bool:
        """Block until `weight` is available or `timeout` elapses."""
        if weight > self.capacity:
            raise ValueError(f"Request weight {weight} exceeds the budget of {self.capacity:.0f}/min")

        deadline = time.monotonic() + timeout
        while True:
            with self.lock:
                self._refill()
                if self.available >= weight:
                    self.available -= weight
                    return True
                shortfall = (weight - self.available) / self.refill_per_second
            if time.monotonic() + shortfall > deadline:
                logger.warning(f"Rate limiter timeout waiting for weight {weight}")
                return False
            time.sleep(min(shortfall, 1.0))
