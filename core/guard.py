"""DeliveryGuard — suppress handling the same webhook update twice.

Telegram re-delivers an update when the previous delivery timed out, which
can start a second handler while the first is still running.  The guard
drops a ``<update_id>.run`` marker file while an update is being handled;
a second delivery that finds the marker is told to abort.

Usage::

    guard = DeliveryGuard("/var/run/mybot")
    with guard.protect(update_id) as proceed:
        if proceed:
            handle(update)
"""

import contextlib
import os
from typing import Iterator, Union

from core.logger import HookgramLogger

logger = HookgramLogger.get_logger()


class DeliveryGuard:
    """Marker-file based duplicate-delivery guard rooted at *directory*."""

    def __init__(self, directory: str = ".") -> None:
        self._directory = directory

    def marker_path(self, update_id: Union[int, str]) -> str:
        """Return the marker file path for *update_id*."""
        return os.path.join(self._directory, f"{update_id}.run")

    def acquire(self, update_id: Union[int, str]) -> bool:
        """Atomically create the marker for *update_id*.

        Returns ``True`` if the caller should proceed and ``False`` if another
        handler already holds the marker.
        """
        os.makedirs(self._directory, exist_ok=True)
        path = self.marker_path(update_id)
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            logger.info("Duplicate delivery suppressed", extra={"update_id": update_id, "marker": path})
            return False
        with os.fdopen(fd, "w") as fh:
            fh.write("1")
        logger.debug("Delivery marker acquired", extra={"update_id": update_id, "marker": path})
        return True

    def release(self, update_id: Union[int, str]) -> None:
        """Remove the marker for *update_id*; a missing marker is not an error."""
        path = self.marker_path(update_id)
        try:
            os.remove(path)
            logger.debug("Delivery marker released", extra={"update_id": update_id, "marker": path})
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.error("Failed to remove delivery marker", extra={"update_id": update_id, "marker": path, "error": str(exc)})

    @contextlib.contextmanager
    def protect(self, update_id: Union[int, str]) -> Iterator[bool]:
        """Context manager yielding whether the caller should handle the update.

        A marker created here is removed on every exit path, exceptions
        included.  A duplicate scope leaves the other handler's marker alone.
        """
        acquired = self.acquire(update_id)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(update_id)
