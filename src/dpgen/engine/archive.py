"""Generated file bundles: zip archives, disk output, and tree previews."""

from __future__ import annotations

import io
import logging
import zipfile
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

logger = logging.getLogger("dpgen.archive")

COMPRESS_LEVEL = 6


class ArchiveError(ValueError):
    """Raised for unsafe, duplicate, or colliding output paths."""


@dataclass(frozen=True)
class GeneratedFile:
    path: str
    content: str


@dataclass
class FileNode:
    """One entry in a file tree preview."""
    name: str
    path: str
    type: str  # "file" or "directory"
    children: list[FileNode] = field(default_factory=list)

    def to_dict(self) -> dict:
        data: dict = {"name": self.name, "path": self.path, "type": self.type}
        if self.type == "directory":
            data["children"] = [c.to_dict() for c in self.children]
        return data


def _check_path(path: str) -> PurePosixPath:
    if not path or not path.strip():
        raise ArchiveError("Empty file path")
    pure = PurePosixPath(path)
    if pure.is_absolute() or "\\" in path:
        raise ArchiveError(f"Path must be relative: {path}")
    if ".." in pure.parts:
        raise ArchiveError(f"Path escapes the archive root: {path}")
    return pure


def check_paths(files: Sequence[GeneratedFile]) -> None:
    """Reject absolute, parent-relative, and duplicate paths."""
    seen: set[str] = set()
    for f in files:
        normalized = str(_check_path(f.path))
        if normalized in seen:
            raise ArchiveError(f"Duplicate path: {f.path}")
        seen.add(normalized)


def build_zip(files: Sequence[GeneratedFile]) -> bytes:
    """Pack files into an in-memory zip (DEFLATE, level 6)."""
    check_paths(files)
    buffer = io.BytesIO()
    with zipfile.ZipFile(
        buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=COMPRESS_LEVEL,
    ) as zf:
        for f in files:
            zf.writestr(str(PurePosixPath(f.path)), f.content)
    data = buffer.getvalue()
    logger.debug("Built zip with %d file(s), %d bytes", len(files), len(data))
    return data


def write_files(files: Sequence[GeneratedFile], target_dir: Path, overwrite: bool = False) -> list[Path]:
    """Write files under ``target_dir``. Existing files are an error unless ``overwrite``."""
    check_paths(files)
    target_dir = Path(target_dir)
    destinations = [target_dir / PurePosixPath(f.path) for f in files]

    if not overwrite:
        existing = [d for d in destinations if d.exists()]
        if existing:
            raise ArchiveError(
                f"{len(existing)} file(s) already exist, e.g. {existing[0]}. Use overwrite to replace them."
            )

    for f, dest in zip(files, destinations):
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(f.content)
    logger.info("Wrote %d file(s) to %s", len(destinations), target_dir)
    return destinations


def build_file_tree(paths: Iterable[str]) -> list[FileNode]:
    """Nest slash-separated paths into a tree; directories first, then by name."""
    root = FileNode(name="", path="", type="directory")
    for path in paths:
        parts = PurePosixPath(path).parts
        node = root
        for i, part in enumerate(parts):
            is_file = i == len(parts) - 1
            child = next((c for c in node.children if c.name == part), None)
            if child is None:
                child = FileNode(
                    name=part,
                    path="/".join(parts[: i + 1]),
                    type="file" if is_file else "directory",
                )
                node.children.append(child)
            node = child
    _sort_tree(root)
    return root.children


def _sort_tree(node: FileNode) -> None:
    node.children.sort(key=lambda c: (c.type != "directory", c.name))
    for child in node.children:
        _sort_tree(child)
