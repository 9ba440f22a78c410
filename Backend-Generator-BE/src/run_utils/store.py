import json
import logging
import os
import shutil
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional

from pydantic import ValidationError

from src import config
from src.api.projects.projects_dto import ProjectDescriptor, ProjectRecord, ProjectSummary
from src.run_utils.fs_tools import list_tree, materialize, safe_join
from src.run_utils.report import build_summary_markdown
from src.utils.dto import FileContent, ReplaceResult
from src.utils.errors import NotFound

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime) -> str:
    return ts.isoformat().replace("+00:00", "Z")


class ProjectStore:
    """
    Generated projects on disk, one directory per project id.

    Each directory holds the generated files plus project-metadata.json and
    a PROJECT_SUMMARY.md. The metadata is written once at creation; later
    edits to files do not update it.
    """

    def __init__(self, root_dir: str, clock: Callable[[], datetime] = utc_now):
        self.root_dir = os.path.abspath(root_dir)
        self.clock = clock
        os.makedirs(self.root_dir, exist_ok=True)

    def project_path(self, project_id: str) -> str:
        path = safe_join(self.root_dir, project_id)
        if path == os.path.realpath(self.root_dir):
            raise NotFound("Project not found")
        return path

    def exists(self, project_id: str) -> bool:
        return os.path.isdir(self.project_path(project_id))

    def _require_project(self, project_id: str) -> str:
        path = self.project_path(project_id)
        if not os.path.isdir(path):
            raise NotFound("Project not found")
        return path

    def create(self, descriptor: ProjectDescriptor, prompt: str, model: str) -> ProjectRecord:
        project_id = str(uuid.uuid4())
        path = os.path.join(self.root_dir, project_id)
        data = descriptor.model_dump()
        data.update(id=project_id, prompt=prompt, model=model, generated=_iso(self.clock()))
        record = ProjectRecord.model_validate(data)
        try:
            materialize(path, descriptor.fileTree)
            with open(os.path.join(path, config.METADATA_FILE), "w", encoding="utf-8") as f:
                json.dump(record.model_dump(), f, indent=2, ensure_ascii=False)
            if config.SUMMARY_FILE not in descriptor.fileTree:
                with open(os.path.join(path, config.SUMMARY_FILE), "w", encoding="utf-8") as f:
                    f.write(build_summary_markdown(record))
        except Exception:
            shutil.rmtree(path, ignore_errors=True)
            raise
        logger.info("Created project %s (%s) with %d entries", project_id, record.projectName, len(descriptor.fileTree))
        return record

    def _load(self, path: str) -> ProjectRecord:
        with open(os.path.join(path, config.METADATA_FILE), "r", encoding="utf-8") as f:
            return ProjectRecord.model_validate(json.load(f))

    def get(self, project_id: str) -> ProjectRecord:
        path = self.project_path(project_id)
        try:
            return self._load(path)
        except (OSError, ValueError, ValidationError):
            raise NotFound("Project not found")

    def list(self) -> List[ProjectSummary]:
        summaries: List[ProjectSummary] = []
        with os.scandir(self.root_dir) as it:
            for entry in it:
                if not entry.is_dir():
                    continue
                try:
                    r = self._load(entry.path)
                except (OSError, ValueError, ValidationError) as e:
                    logger.debug("Skipping %s: %s", entry.name, e)
                    continue
                summaries.append(
                    ProjectSummary(
                        id=r.id,
                        name=r.projectName,
                        description=r.description,
                        technology=r.technology,
                        generated=r.generated,
                        model=r.model,
                    )
                )
        # sort is stable, so equal timestamps keep scan order
        return sorted(summaries, key=lambda s: s.generated, reverse=True)

    def delete(self, project_id: str) -> None:
        path = self.project_path(project_id)
        shutil.rmtree(path, ignore_errors=True)
        logger.info("Deleted project %s", project_id)

    def list_files(self, project_id: str) -> List[str]:
        return list_tree(self._require_project(project_id), exclude=(config.METADATA_FILE,))

    def _file_path(self, project_id: str, relative_path: str) -> str:
        root = self._require_project(project_id)
        return safe_join(root, relative_path)

    def read_file(self, project_id: str, relative_path: str) -> FileContent:
        full = self._file_path(project_id, relative_path)
        if not os.path.isfile(full):
            raise NotFound("File not found")
        with open(full, "r", encoding="utf-8") as f:
            content = f.read()
        st = os.stat(full)
        return FileContent(
            path=relative_path,
            content=content,
            size=st.st_size,
            modified=_iso(datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)),
        )

    def write_file(self, project_id: str, relative_path: str, content: str) -> str:
        full = self._file_path(project_id, relative_path)
        if os.path.isdir(full):
            raise NotFound("File not found")
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "w", encoding="utf-8") as f:
            f.write(content)
        return full

    def _backup_path(self, full: str) -> str:
        stamp = self.clock().strftime("%Y%m%dT%H%M%S%fZ")
        candidate = f"{full}.backup.{stamp}"
        n = 1
        while os.path.exists(candidate):
            candidate = f"{full}.backup.{stamp}-{n}"
            n += 1
        return candidate

    def backup_then_replace(
        self, project_id: str, relative_path: str, new_content: str
    ) -> ReplaceResult:
        """Keep the current content in a timestamped sibling, then overwrite."""
        full = self._file_path(project_id, relative_path)
        if not os.path.isfile(full):
            raise NotFound("File not found")
        with open(full, "r", encoding="utf-8") as f:
            previous = f.read()

        backup = self._backup_path(full)
        shutil.copy2(full, backup)
        with open(full, "w", encoding="utf-8") as f:
            f.write(new_content)

        root = self._require_project(project_id)
        return ReplaceResult(
            path=relative_path,
            previous_content=previous,
            backup_path=os.path.relpath(backup, root).replace(os.sep, "/"),
        )


_store: Optional[ProjectStore] = None


def get_project_store() -> ProjectStore:
    global _store
    if _store is None:
        _store = ProjectStore(config.PROJECTS_DIR)
    return _store
