from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from src.api.projects.projects_dto import (
    DeleteProjectResponse,
    EditFileRequest,
    EditFileResponse,
    FileContentResponse,
    GenerateRequest,
    GenerateResponse,
    ListProjectsResponse,
    UpdateFileContentRequest,
    UpdateFileResponse,
)
from src.generate.project_core import run_generation
from src.modify.modify_core import apply_file_edit
from src.run_utils.artifacts import stream_zip_response
from src.run_utils.llm import LLMClient, get_llm_client
from src.run_utils.locks import project_lock
from src.run_utils.model_registry import DEFAULT_EDIT_MODEL, DEFAULT_MODEL
from src.run_utils.store import ProjectStore, get_project_store
from src.utils.errors import InvalidInput

router = APIRouter(
    tags=["Projects"],
    prefix="/api",
)


@router.post(
    "/generate",
    response_model=GenerateResponse,
    summary="Generate a backend project from a prompt",
)
async def generate(
    body: GenerateRequest,
    llm: LLMClient = Depends(get_llm_client),
    store: ProjectStore = Depends(get_project_store),
) -> GenerateResponse:
    if not body.prompt:
        raise InvalidInput("Prompt is required")
    model = body.model or DEFAULT_MODEL
    record = await run_generation(llm, store, body.prompt, model, body.options)
    return GenerateResponse(
        projectId=record.id,
        projectName=record.projectName,
        description=record.description,
        technology=record.technology,
        framework=record.framework,
        database=record.database,
        fileTree=list(record.fileTree.keys()),
        dependencies=record.dependencies,
        devDependencies=record.devDependencies,
        setupInstructions=record.setupInstructions,
        apiEndpoints=record.apiEndpoints,
        environmentVariables=record.environmentVariables,
        downloadUrl=f"/api/download/{record.id}",
        viewUrl=f"/api/project/{record.id}",
    )


@router.get(
    "/download/{project_id}",
    response_class=FileResponse,
    summary="Download a generated project as a zip archive",
)
async def download(
    project_id: str,
    store: ProjectStore = Depends(get_project_store),
) -> FileResponse:
    return await stream_zip_response(store, project_id)


@router.get(
    "/projects",
    response_model=ListProjectsResponse,
    summary="List generated projects, newest first",
)
async def list_projects(
    store: ProjectStore = Depends(get_project_store),
) -> ListProjectsResponse:
    projects = store.list()
    return ListProjectsResponse(projects=projects, total=len(projects))


@router.get(
    "/project/{project_id}",
    summary="Get a project's metadata and current file list",
)
async def get_project(
    project_id: str,
    store: ProjectStore = Depends(get_project_store),
) -> Dict[str, Any]:
    record = store.get(project_id)
    return {**record.model_dump(), "files": store.list_files(project_id)}


@router.delete(
    "/project/{project_id}",
    response_model=DeleteProjectResponse,
    summary="Delete a project; deleting a missing project also succeeds",
)
async def delete_project(
    project_id: str,
    store: ProjectStore = Depends(get_project_store),
) -> DeleteProjectResponse:
    async with project_lock(project_id):
        store.delete(project_id)
    return DeleteProjectResponse()


@router.get(
    "/project/{project_id}/file/{file_path:path}",
    response_model=FileContentResponse,
    summary="Read one file of a project",
)
async def read_file(
    project_id: str,
    file_path: str,
    store: ProjectStore = Depends(get_project_store),
) -> FileContentResponse:
    f = store.read_file(project_id, file_path)
    return FileContentResponse(content=f.content, path=f.path, size=f.size, modified=f.modified)


@router.put(
    "/project/{project_id}/file/{file_path:path}",
    response_model=UpdateFileResponse,
    summary="Overwrite (or create) one file of a project",
)
async def update_file(
    project_id: str,
    file_path: str,
    body: UpdateFileContentRequest,
    store: ProjectStore = Depends(get_project_store),
) -> UpdateFileResponse:
    if body.content is None:
        raise InvalidInput("Content is required")
    async with project_lock(project_id):
        store.write_file(project_id, file_path, body.content)
    return UpdateFileResponse(path=file_path)


async def _edit(
    mode: str,
    project_id: str,
    file_path: str,
    body: EditFileRequest,
    llm: LLMClient,
    store: ProjectStore,
) -> EditFileResponse:
    if not body.requirements:
        raise InvalidInput("Requirements are required")
    result = await apply_file_edit(
        llm,
        store,
        project_id,
        file_path,
        body.requirements,
        body.model or DEFAULT_EDIT_MODEL,
        mode,
    )
    verb = "enhanced" if mode == "enhance" else "rewritten"
    return EditFileResponse(
        path=result.path,
        message=f"File {verb} successfully",
        backupPath=result.backup_path,
    )


@router.put(
    "/project/{project_id}/enhance/{file_path:path}",
    response_model=EditFileResponse,
    summary="Improve a file with the model, keeping a backup",
)
async def enhance_file(
    project_id: str,
    file_path: str,
    body: EditFileRequest,
    llm: LLMClient = Depends(get_llm_client),
    store: ProjectStore = Depends(get_project_store),
) -> EditFileResponse:
    return await _edit("enhance", project_id, file_path, body, llm, store)


@router.put(
    "/project/{project_id}/rewrite/{file_path:path}",
    response_model=EditFileResponse,
    summary="Rewrite a file from scratch with the model, keeping a backup",
)
async def rewrite_file(
    project_id: str,
    file_path: str,
    body: EditFileRequest,
    llm: LLMClient = Depends(get_llm_client),
    store: ProjectStore = Depends(get_project_store),
) -> EditFileResponse:
    return await _edit("rewrite", project_id, file_path, body, llm, store)
