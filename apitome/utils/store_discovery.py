"""Store discovery utilities for locating the durable store file."""

from pathlib import Path
from typing import List, Optional

STORE_DIRNAME = ".apitome"
DEFAULT_STORE_FILENAME = "apitome.db"


def find_store_files(start_dir: Optional[Path] = None) -> List[Path]:
    """Find all ``*.db`` files in the project's ``.apitome`` directory.

    Args:
        start_dir: Directory to start searching from. Defaults to current directory.

    Returns:
        Paths of the store files found, sorted by name.
    """
    if start_dir is None:
        start_dir = Path.cwd()

    store_dir = start_dir / STORE_DIRNAME

    if not store_dir.is_dir():
        return []

    return sorted(store_dir.glob("*.db"))


def default_store_path() -> Path:
    """The per-user store, ``~/.apitome/apitome.db``."""
    return Path.home() / STORE_DIRNAME / DEFAULT_STORE_FILENAME


def discover_store(store_path: Optional[str] = None, start_dir: Optional[Path] = None) -> str:
    """Decide which store file to use.

    Args:
        store_path: Explicitly provided path. If provided, this is used directly.
        start_dir: Directory to start searching from. Defaults to current directory.

    Returns:
        Path to the store file. It may not exist yet.

    Raises:
        ValueError: If several project stores exist and none was chosen.
    """
    if store_path:
        return str(Path(store_path).expanduser())

    store_files = find_store_files(start_dir)

    if len(store_files) == 1:
        return str(store_files[0])

    if len(store_files) > 1:
        names = [f.name for f in store_files]
        raise ValueError(
            f"Multiple stores found in {STORE_DIRNAME} directory: {', '.join(names)}. "
            f"Please specify which store to use with --db."
        )

    return str(default_store_path())
