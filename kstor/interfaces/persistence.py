"""
Persistence protocol for storage backends holding the serialized document.
"""

from abc import ABC, abstractmethod


class Persistence(ABC):
    """
    Protocol for the byte storage behind a store.

    Implementations must support:
    - Reading the whole payload via load()
    - Replacing the whole payload atomically via save()
    - Creating the containing location via ensure_dir()
    """

    @property
    @abstractmethod
    def path(self) -> str:
        """Human readable location of the payload, used in messages."""
        pass

    @abstractmethod
    def load(self) -> bytes:
        """
        Read the persisted payload.

        Returns:
            The raw bytes last saved.

        Raises:
            FileNotFoundError: If nothing has been saved yet.
            PermissionError: If the payload cannot be read.
        """
        pass

    @abstractmethod
    def save(self, data: bytes) -> None:
        """
        Replace the persisted payload.

        Readers must observe either the old or the new payload, never a mix.

        Args:
            data: The bytes to persist.

        Raises:
            OSError: If the payload cannot be written.
        """
        pass

    @abstractmethod
    def ensure_dir(self) -> None:
        """Create the location the payload is saved in, if missing."""
        pass

    def close(self) -> None:
        """Release any held resources. Default is a no-op."""
        pass
