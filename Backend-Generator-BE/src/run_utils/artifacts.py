import logging
import os
import tempfile
import zipfile

from starlette.background import BackgroundTask
from starlette.concurrency import run_in_threadpool
from fastapi.responses import FileResponse

from src.run_utils.store import ProjectStore
from src.utils.errors import NotFound

logger = logging.getLogger(__name__)


def build_zip(project_dir: str, output_path: str) -> str:
    """Zip everything under project_dir, entries relative to it, best compression."""
    with zipfile.ZipFile(
        output_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9
    ) as zf:
        for root, dirs, files in os.walk(project_dir):
            dirs.sort()
            rel_root = os.path.relpath(root, project_dir)
            if rel_root != "." and not files and not dirs:
                zf.write(root, rel_root.replace(os.sep, "/") + "/")
            for name in sorted(files):
                full = os.path.join(root, name)
                zf.write(full, os.path.relpath(full, project_dir).replace(os.sep, "/"))
    return output_path


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except OSError as e:
        logger.warning("Could not remove archive %s: %s", path, e)


async def stream_zip_response(store: ProjectStore, project_id: str) -> FileResponse:
    if not store.exists(project_id):
        raise NotFound("Project not found")

    fd, zip_path = tempfile.mkstemp(prefix=f"{project_id}-", suffix=".zip")
    os.close(fd)
    try:
        # zipping a large tree is slow; keep it off the event loop
        await run_in_threadpool(build_zip, store.project_path(project_id), zip_path)
    except Exception:
        _remove_quietly(zip_path)
        raise

    return FileResponse(
        zip_path,
        media_type="application/zip",
        filename=f"backend-project-{project_id}.zip",
        background=BackgroundTask(_remove_quietly, zip_path),
    )
