"""
Rate limiting en memoria (ventana deslizante por IP) para las rutas de suscripción.
"""
import time
import logging
from typing import Dict, List

from ..errors import RateLimitExceeded

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """
    Cuenta los hits de cada clave dentro de la última ventana.

    Los hits vencidos se podan al consultar la clave; las claves sin hits
    vigentes se descartan en un barrido completo (como mucho una vez por ventana).
    """

    def __init__(self, max_requests: int = 20, window_seconds: float = 60.0, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._hits: Dict[str, List[float]] = {}
        self._last_sweep = clock()

    def allow(self, key: str) -> bool:
        """True si el request entra en la ventana (y lo cuenta), False si excede."""
        now = self.clock()
        self._sweep(now)

        hits = [t for t in self._hits.get(key, ()) if now - t < self.window_seconds]
        if len(hits) >= self.max_requests:
            self._hits[key] = hits
            return False
        hits.append(now)
        self._hits[key] = hits
        return True

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        # Cada lista está ordenada: si el último hit venció, vencieron todos
        stale = [key for key, hits in self._hits.items() if not hits or now - hits[-1] >= self.window_seconds]
        for key in stale:
            del self._hits[key]
        if stale:
            logger.debug(f"🧹 Rate limit: {len(stale)} claves vencidas descartadas")

    def check(self, key: str) -> None:
        if not self.allow(key):
            logger.warning(f"🚫 Rate limit excedido para {key}")
            raise RateLimitExceeded(f"rate limit exceeded for {key}")

    def reset(self):
        self._hits.clear()

    def __len__(self) -> int:
        return len(self._hits)
