from abc import ABC, abstractmethod
from pathlib import Path
from typing import List


class Backend(ABC):
    """
    ABC for backend implementations.
    Implements how to list and delete existing backup directories.
    """

    @abstractmethod
    def remove(self, path: Path) -> None:
        """
        Removes a backup directory and everything in it.
        :param path: The directory to remove.
        :raises PruneError: if the directory could not be removed.
        """
        pass

    @abstractmethod
    def get_existing_backups(self) -> List[Path]:
        """
        Returns the entries of the backup root.
        """
        pass
