import shutil
from pathlib import Path
from typing import List

from pg_backup.backends.base import Backend
from pg_backup.errors import PruneError


class DiskBackend(Backend):
    """
    Disk backend for handling backup directories on local disk.
    """

    def __init__(self, backup_dir: Path):
        """
        :param backup_dir: main dir for backups
        """
        self.backup_dir = Path(backup_dir)

    def get_existing_backups(self) -> List[Path]:
        """
        Get all entries directly below the backup dir.
        :return: sorted list of paths
        """
        return sorted(self.backup_dir.iterdir())

    def remove(self, path: Path) -> None:
        path = Path(path)
        if not path.is_absolute():
            path = self.backup_dir / path
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise PruneError(path, str(e)) from e
