import json
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


def _text(v: Any) -> Any:
    if v is None:
        return ""
    if isinstance(v, (int, float, bool)):
        return str(v)
    return v


def _name_map(v: Any) -> Any:
    """Accept {name: value} or a requirements-style list of names."""
    if v is None:
        return {}
    if isinstance(v, list):
        out: Dict[str, Any] = {}
        for item in v:
            if isinstance(item, dict) and "name" in item:
                out[str(item["name"])] = item.get("version", item.get("value", ""))
            else:
                out[str(item)] = ""
        return out
    return v


Text = Annotated[str, BeforeValidator(_text)]
NameMap = Annotated[Dict[str, Any], BeforeValidator(_name_map)]


class FileTreeEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = Field(None, description="Either 'directory' or 'file'; anything else is skipped.")
    content: Optional[str] = Field(None, description="File content; ignored for directories.")

    @field_validator("content", mode="before")
    @classmethod
    def _content_as_text(cls, v):
        # models often inline package.json and friends as objects
        if isinstance(v, (dict, list)):
            return json.dumps(v, indent=2, ensure_ascii=False)
        return None if v is None else _text(v)


class ApiEndpoint(BaseModel):
    model_config = ConfigDict(extra="allow")

    method: Text = Field("", description="HTTP method of the endpoint.")
    path: Text = Field("", description="Route path of the endpoint.")
    description: Text = Field("", description="What the endpoint does.")
    parameters: Optional[Any] = Field(None, description="Accepted parameters, free form.")
    response: Optional[Any] = Field(None, description="Response shape, free form.")


class ProjectDescriptor(BaseModel):
    """
    The project description recovered from the model output.

    Null text fields read as "", list-shaped dependency and variable sections
    become name maps. A fileTree that is not a mapping is rejected.
    """

    model_config = ConfigDict(extra="allow")

    projectName: Text = Field("generated-project", description="Display label only.")
    description: Text = ""
    technology: Text = ""
    framework: Text = ""
    database: Text = ""
    fileTree: Dict[str, FileTreeEntry] = Field(default_factory=dict)
    dependencies: NameMap = Field(default_factory=dict)
    devDependencies: NameMap = Field(default_factory=dict)
    setupInstructions: List[str] = Field(default_factory=list)
    apiEndpoints: List[ApiEndpoint] = Field(default_factory=list)
    environmentVariables: NameMap = Field(default_factory=dict)

    @field_validator("projectName", mode="after")
    @classmethod
    def _default_name(cls, v):
        return v or "generated-project"

    @field_validator("fileTree", mode="before")
    @classmethod
    def _file_tree(cls, v):
        if v is None:
            return {}
        if isinstance(v, dict):
            # entries without an object body get no type and are skipped on write
            return {k: (e if isinstance(e, dict) else {}) for k, e in v.items()}
        return v

    @field_validator("setupInstructions", mode="before")
    @classmethod
    def _steps(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if isinstance(v, list):
            return [json.dumps(s) if isinstance(s, (dict, list)) else str(_text(s)) for s in v]
        return v

    @field_validator("apiEndpoints", mode="before")
    @classmethod
    def _endpoints(cls, v):
        return [] if v is None else v


class ProjectRecord(ProjectDescriptor):
    """Persisted as project-metadata.json; a snapshot taken at generation time."""

    id: str = Field(..., description="Generated identifier, also the directory name.")
    prompt: str = Field(..., description="The prompt the project was generated from.")
    model: str = Field(..., description="Short model name used for generation.")
    generated: str = Field(..., description="ISO-8601 UTC generation timestamp.")


class ProjectSummary(BaseModel):
    id: str
    name: str
    description: str = ""
    technology: str = ""
    generated: str
    model: str = ""


class ListProjectsResponse(BaseModel):
    projects: List[ProjectSummary]
    total: int


class GenerationOptions(BaseModel):
    temperature: Optional[float] = Field(None, description="Sampling temperature.")
    maxTokens: Optional[int] = Field(None, description="Response length cap.")
    topP: Optional[float] = Field(None, description="Nucleus sampling cutoff.")


class GenerateRequest(BaseModel):
    prompt: Optional[str] = Field(None, description="What backend to generate.")
    model: Optional[str] = Field(None, description="Short model name or provider id.")
    options: GenerationOptions = Field(default_factory=GenerationOptions)


class GenerateResponse(BaseModel):
    success: bool = True
    projectId: str
    projectName: str
    description: str
    technology: str
    framework: str
    database: str
    fileTree: List[str]
    dependencies: Dict[str, Any]
    devDependencies: Dict[str, Any]
    setupInstructions: List[str]
    apiEndpoints: List[ApiEndpoint]
    environmentVariables: Dict[str, Any]
    downloadUrl: str
    viewUrl: str


class FileContentResponse(BaseModel):
    content: str
    path: str
    size: int
    modified: str


class UpdateFileContentRequest(BaseModel):
    content: Optional[str] = Field(None, description="New content for the file")


class UpdateFileResponse(BaseModel):
    success: bool = True
    path: str


class EditFileRequest(BaseModel):
    requirements: Optional[str] = Field(None, description="What the AI should change.")
    model: Optional[str] = Field(None, description="Short model name or provider id.")


class EditFileResponse(BaseModel):
    success: bool = True
    path: str
    message: str
    backupCreated: bool = True
    backupPath: str


class DeleteProjectResponse(BaseModel):
    success: bool = True
    message: str = "Project deleted successfully"
