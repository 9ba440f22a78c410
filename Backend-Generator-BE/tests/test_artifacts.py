"""
Tests for src/run_utils/artifacts.py
"""
import os
import zipfile

import pytest

from src import config
from src.api.projects.projects_dto import ProjectDescriptor
from src.run_utils.artifacts import build_zip, stream_zip_response
from src.utils.errors import NotFound


@pytest.fixture
def project_id(store, sample_project):
    return store.create(ProjectDescriptor.model_validate(sample_project), "p", "m").id


def test_build_zip_entries_are_relative(store, project_id, tmp_path):
    out = build_zip(store.project_path(project_id), str(tmp_path / "out.zip"))

    with zipfile.ZipFile(out) as zf:
        names = set(zf.namelist())
        assert "src/app.js" in names
        assert "src/routes/todos.js" in names
        assert config.METADATA_FILE in names
        assert not any(n.startswith(project_id) for n in names)
        assert zf.read("src/app.js").decode("utf-8") == "const express = require('express');\n"
        assert all(i.compress_type == zipfile.ZIP_DEFLATED for i in zf.infolist() if not i.is_dir())


def test_build_zip_keeps_empty_directories(tmp_path):
    src = tmp_path / "proj"
    (src / "empty" / "nested").mkdir(parents=True)
    (src / "f.txt").write_text("x", encoding="utf-8")

    out = build_zip(str(src), str(tmp_path / "out.zip"))
    with zipfile.ZipFile(out) as zf:
        assert "empty/nested/" in zf.namelist()


async def test_stream_zip_response_cleans_up(store, project_id):
    response = await stream_zip_response(store, project_id)

    assert os.path.exists(response.path)
    assert response.media_type == "application/zip"
    assert f"backend-project-{project_id}.zip" in response.headers["content-disposition"]

    await response.background()
    assert not os.path.exists(response.path)


async def test_stream_zip_response_unknown_project(store):
    with pytest.raises(NotFound):
        await stream_zip_response(store, "missing")
