# controllers/mi_explorer/explore/utils.py
import threading
from typing import Optional


class CancellationToken:
    """
    Cooperative stop flag shared between the planning loop and whoever drives it.

    The loop polls `cancelled` at the top of every sweep sub-iteration and every
    outer iteration; nothing is interrupted mid-update.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def is_cancelled(token: Optional[CancellationToken]) -> bool:
    return token is not None and token.cancelled
