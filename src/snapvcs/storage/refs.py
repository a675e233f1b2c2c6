"""HEAD reference for the single-branch commit chain.

HEAD is a one-line file holding the id of the most recent commit, or
nothing at all before the first commit. A missing HEAD file means the
repository was never initialized, which is a different condition from
"no commits yet".
"""

import logging
from pathlib import Path
from typing import Optional

from snapvcs.constants import HEAD_FILE
from snapvcs.exceptions import PreconditionError, StorageIOError
from snapvcs.storage.fileio import atomic_write
from snapvcs.storage.object_store import validate_object_id

logger = logging.getLogger(__name__)


class Head:
    """Persisted pointer to the latest commit.

    Attributes:
        head_path: Path to the HEAD file (.snapvcs/HEAD)
    """

    def __init__(self, repo_dir: Path) -> None:
        self.repo_dir = Path(repo_dir)
        self.head_path = self.repo_dir / HEAD_FILE

    def exists(self) -> bool:
        return self.head_path.is_file()

    def read(self) -> Optional[str]:
        """Read the current commit id.

        Returns:
            Commit id, or None if the repository has no commits yet

        Raises:
            PreconditionError: If the HEAD file is missing
            InvalidInputError: If HEAD holds something that is not a hash
        """
        self._require()
        try:
            content = self.head_path.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise StorageIOError(f"Failed to read HEAD: {e}") from e

        if not content:
            return None
        return validate_object_id(content)

    def write(self, commit_id: str) -> None:
        """Point HEAD at ``commit_id``, replacing its previous content.

        Raises:
            PreconditionError: If the HEAD file is missing
            InvalidInputError: If commit_id is not a hash
            StorageIOError: If the write fails
        """
        validate_object_id(commit_id)
        self._require()
        atomic_write(self.head_path, commit_id.encode("utf-8"), prefix=".tmp_head_")
        logger.debug("HEAD updated to commit: %s", commit_id)

    def restore(self, commit_id: Optional[str]) -> None:
        """Put HEAD back to a previously read value.

        Unlike ``write``, this accepts None and empties HEAD again.
        """
        if commit_id is None:
            self._require()
            atomic_write(self.head_path, b"", prefix=".tmp_head_")
            logger.debug("HEAD restored to empty")
        else:
            self.write(commit_id)

    def _require(self) -> None:
        if not self.exists():
            raise PreconditionError(
                f"HEAD file does not exist at {self.head_path}. "
                "Repository may not be initialized properly."
            )
