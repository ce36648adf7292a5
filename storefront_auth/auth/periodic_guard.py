"""
Auth: Periodic Guard

Revalidation des sessions tant que le client est ouvert: un timer
(60 s par défaut) et le retour de focus fenêtre appellent le même check.
"""

import asyncio
from typing import Callable, Optional

from ..logging import StructuredLogger
from .interfaces import ISessionValidator, ReconcileResult


class PeriodicGuard:
    """
    Déclencheur de revalidation.

    Les deux déclencheurs partagent check(): pas de chemin séparé
    timer / focus.

    Example:
        guard = PeriodicGuard(validator, controller.apply_validation)
        guard.start()
        ...
        await guard.on_window_focus()
        await guard.stop()
    """

    DEFAULT_INTERVAL_SECONDS: float = 60.0

    def __init__(
        self,
        validator: ISessionValidator,
        on_result: Callable[[ReconcileResult], None],
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        logger: Optional[StructuredLogger] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._validator = validator
        self._on_result = on_result
        self._interval = interval_seconds
        self._log = (logger or StructuredLogger("storefront-auth")).with_context(component="periodic_guard")
        self._task: Optional[asyncio.Task] = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Lance le timer (no-op si déjà lancé)."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Annule le timer et attend sa fin."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def on_window_focus(self) -> ReconcileResult:
        """Retour de focus fenêtre."""
        return await self.check()

    async def check(self) -> ReconcileResult:
        """
        Réconcilie les tokens persistés et transmet le résultat.

        Idempotent: deux appels successifs sans changement produisent
        le même résultat.
        """
        result = self._validator.reconcile_stored_tokens()
        try:
            self._on_result(result)
        except Exception as e:
            self._log.warn("Validation sink failed", error=str(e))
        return result

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.check()
            except Exception as e:
                self._log.warn("Periodic validation failed", error=str(e))
