import logging
import os
from typing import Iterable, List, Mapping, Tuple

from src.api.projects.projects_dto import FileTreeEntry
from src.utils.errors import PathTraversal

logger = logging.getLogger(__name__)


def safe_join(root: str, relative_path: str) -> str:
    """
    Join a relative path onto root, refusing anything that could land outside it.

    Rejects absolute paths, any '..' segment and paths that resolve (symlinks
    included) outside root. Returns the absolute joined path.
    """
    if not isinstance(relative_path, str):
        raise PathTraversal(repr(relative_path))
    p = relative_path.replace("\\", "/")
    if p.startswith("/") or os.path.isabs(p) or os.path.splitdrive(p)[0]:
        raise PathTraversal(relative_path)
    if ".." in p.split("/"):
        raise PathTraversal(relative_path)

    root_abs = os.path.realpath(root)
    full = os.path.realpath(os.path.join(root_abs, os.path.normpath(p)))
    if os.path.commonpath([root_abs, full]) != root_abs:
        raise PathTraversal(relative_path)
    return full


def _plan_writes(
    root: str, file_tree: Mapping[str, FileTreeEntry]
) -> List[Tuple[str, str, FileTreeEntry]]:
    root_abs = os.path.realpath(root)
    planned = []
    for rel, entry in file_tree.items():
        full = safe_join(root, rel)
        if entry.type == "file" and full == root_abs:
            raise PathTraversal(rel)
        planned.append((rel, full, entry))
    return planned


def materialize(root_dir: str, file_tree: Mapping[str, FileTreeEntry]) -> str:
    """
    Write a described file tree under root_dir and return its absolute path.

    Every path is checked before the first write, so a single bad path
    aborts the whole tree. Directory entries are optional: file paths create
    their own parents. Existing files are overwritten.
    """
    os.makedirs(root_dir, exist_ok=True)
    planned = _plan_writes(root_dir, file_tree)

    for rel, full, entry in planned:
        if entry.type == "directory":
            os.makedirs(full, exist_ok=True)
        elif entry.type == "file":
            os.makedirs(os.path.dirname(full), exist_ok=True)
            with open(full, "w", encoding="utf-8") as f:
                f.write(entry.content or "")
        else:
            logger.warning("Skipping %s: unknown entry type %r", rel, entry.type)

    return os.path.abspath(root_dir)


def list_tree(root: str, exclude: Iterable[str] = ()) -> List[str]:
    """Sorted forward-slash paths of every file below root."""
    skip = set(exclude)
    out: List[str] = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            rel = os.path.relpath(os.path.join(dirpath, name), root).replace(os.sep, "/")
            if rel not in skip:
                out.append(rel)
    return sorted(out)
