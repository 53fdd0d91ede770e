"""Dauerhafter Key-Value-Speicher des Chat-Widgets: legt Zeichenketten
ohne Ablaufzeit in Redis ab (z.B. Session -> Thread-ID)."""
from typing import Optional


class KeyValueStore:
    """Dünne get/set-Schicht über einem Redis-Client.

    Erwartet einen Client mit ``decode_responses=True``, damit Werte als
    Strings zurückkommen."""

    def __init__(self, redis_conn, prefix: str = ""):
        self.redis = redis_conn
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Optional[str]:
        value = self.redis.get(self._key(key))
        # Leere Strings gelten als "nicht gesetzt".
        return value or None

    def set(self, key: str, value: str) -> None:
        """Schreibt den Wert ohne TTL; ältere Einträge werden überschrieben."""
        self.redis.set(self._key(key), value)
