"""Ownership of the current engine handle.

There is exactly one slot. Creating a handle destroys whatever occupied the
slot first, so two live handles never coexist. Everything else borrows the
handle through get_handle() and must not keep it across an async boundary.
"""

from typing import Optional

from playsync.engine.handle import EngineHandle, HandleFactory, HandleOptions, Source
from playsync.engine.miniaudio_handle import MiniaudioHandle
from playsync.logging_config import get_logger

logger = get_logger(__name__)


class EngineInstanceManager:
    """Creates, replaces and destroys the current engine handle.

    Attributes:
        factory: Callable building a handle from (source, options)
    """

    def __init__(self, factory: Optional[HandleFactory] = None):
        """Initialize an empty manager.

        Args:
            factory: Handle factory (defaults to MiniaudioHandle)
        """
        self.factory: HandleFactory = factory or MiniaudioHandle
        self._handle: Optional[EngineHandle] = None

    def create_handle(self, source: Source, options: Optional[HandleOptions] = None) -> EngineHandle:
        """Replace the current handle with a new one.

        A source that cannot be decoded is not an error here; the handle
        reports it later through its loaderror event.

        Args:
            source: Audio source
            options: Options for the new handle

        Returns:
            The new current handle
        """
        self.destroy_handle()
        handle = self.factory(source, options or HandleOptions())
        self._handle = handle
        logger.debug(f"Created handle {handle.id} for {source}")
        return handle

    def get_handle(self) -> Optional[EngineHandle]:
        """Get the current handle, or None before the first load."""
        return self._handle

    def destroy_handle(self) -> None:
        """Unload the current handle and clear the slot. No-op when empty."""
        handle = self._handle
        if handle is None:
            return
        self._handle = None
        handle.unload()
        logger.debug(f"Destroyed handle {handle.id}")
