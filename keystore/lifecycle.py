"""
Shutdown wiring for applications that embed a Keystore.

Nothing here runs on import: the application decides whether to install
signal handlers (ShutdownHook.install) or to scope the keystore with
``async with closing(keystore)``.
"""
import asyncio
import signal
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, Optional

import structlog

from keystore.keystore import Keystore

logger = structlog.get_logger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownHook:
    """
    Close a keystore when the process is asked to stop.

    Example:
        >>> hook = ShutdownHook(keystore)
        >>> hook.install()
        >>> await hook.wait()   # returns once a signal closed the keystore
    """

    def __init__(self, keystore: Keystore) -> None:
        self.keystore = keystore
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._installed: list[int] = []
        self._done = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def installed_signals(self) -> list[int]:
        return list(self._installed)

    def install(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        signals: Iterable[int] = DEFAULT_SIGNALS,
    ) -> None:
        """
        Register signal handlers on the running (or given) event loop.

        Signals the platform cannot handle from the loop are skipped with a
        warning; closing(), or an explicit run(), still releases the keystore.
        """
        self._loop = loop or asyncio.get_running_loop()

        for sig in signals:
            try:
                self._loop.add_signal_handler(sig, self._handle_signal, sig)
            except (NotImplementedError, RuntimeError, ValueError) as e:
                logger.warning("shutdown_signal_not_installed", signal=int(sig), error=str(e))
                continue
            self._installed.append(sig)

        logger.info("shutdown_hook_installed", signals=[int(s) for s in self._installed])

    def uninstall(self) -> None:
        """Remove the handlers registered by install()."""
        if self._loop is None:
            return

        for sig in self._installed:
            self._loop.remove_signal_handler(sig)

        self._installed.clear()

    async def run(self) -> None:
        """Close the keystore. Safe to call any number of times."""
        try:
            await self.keystore.close()
        finally:
            self._done.set()

    async def wait(self) -> None:
        """Wait until run() has completed."""
        await self._done.wait()

    def _handle_signal(self, sig: int) -> None:
        logger.info("shutdown_signal_received", signal=int(sig))
        if self._task is None:
            self._task = self._loop.create_task(self.run())


@asynccontextmanager
async def closing(keystore: Keystore) -> AsyncIterator[Keystore]:
    """
    Connect keystore for the duration of the block and always close it.

    The keystore is closed on normal exit, on exceptions, and on
    cancellation (including KeyboardInterrupt surfacing through asyncio.run).
    """
    await keystore.connect()
    try:
        yield keystore
    finally:
        await keystore.close()
