"""Media file discovery."""
from pathlib import Path


MEDIA_EXTENSIONS = {
    '.mkv', '.mp4', '.avi', '.mov', '.wmv', '.flv', '.webm',
    '.m4v', '.mpg', '.mpeg', '.m2ts', '.ts', '.vob', '.ogm'
}


def is_media_file(filepath: Path) -> bool:
    """Check if file is a media file based on extension."""
    return filepath.suffix.lower() in MEDIA_EXTENSIONS


def find_media_files(path: Path, recursive: bool = False) -> list[Path]:
    """
    Find all media files in a directory.

    Args:
        path: Directory or file path
        recursive: Whether to search recursively

    Returns:
        List of media file paths, sorted by file name (case-insensitive)
    """
    path = Path(path)
    if path.is_file():
        if is_media_file(path):
            return [path]
        return []

    if not path.is_dir():
        return []

    items = path.rglob("*") if recursive else path.iterdir()
    files = [item for item in items if item.is_file() and is_media_file(item)]
    return sorted(files, key=lambda p: (p.name.lower(), str(p)))
