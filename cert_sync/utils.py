import os
import tempfile
from pathlib import Path


def atomic_write_text(file_path: Path, content: str, *, mode: int = 0o644) -> None:
    """Write ``content`` next to ``file_path`` and rename it into place.

    The temporary file is a dot-file in the same directory, so readers never
    observe a half-written file and directory listings can skip in-flight ones.
    """
    file_path = Path(file_path)
    fd, tmp_name = tempfile.mkstemp(dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp")

    try:
        with os.fdopen(fd, "w", encoding="UTF-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, file_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def read_text(file_path: Path) -> str:
    try:
        return file_path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return file_path.read_text(encoding="ascii", errors="ignore")
