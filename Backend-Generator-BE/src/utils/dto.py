from dataclasses import dataclass


@dataclass
class FileContent:
    path: str
    content: str
    size: int
    modified: str


@dataclass
class ReplaceResult:
    path: str
    previous_content: str
    backup_path: str
