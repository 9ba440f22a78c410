from typing import Any, Dict, List

from src.api.projects.projects_dto import ProjectRecord


def _deps_block(title: str, deps: Dict[str, Any]) -> List[str]:
    if not deps:
        return []
    lines = [f"### {title}", ""]
    lines += [f"- `{name}`: {version}" for name, version in deps.items()]
    lines.append("")
    return lines


def build_summary_markdown(record: ProjectRecord) -> str:
    """Human-readable PROJECT_SUMMARY.md for a freshly generated project."""
    lines: List[str] = [f"# {record.projectName}", ""]
    if record.description:
        lines += [record.description, ""]

    stack = [
        ("Technology", record.technology),
        ("Framework", record.framework),
        ("Database", record.database),
    ]
    stack = [(k, v) for k, v in stack if v]
    if stack:
        lines += ["## Stack", ""]
        lines += [f"- **{k}:** {v}" for k, v in stack]
        lines.append("")

    lines += [
        "## Generation",
        "",
        f"- **Project id:** `{record.id}`",
        f"- **Model:** {record.model}",
        f"- **Generated:** {record.generated}",
        "",
        "### Prompt",
        "",
        "> " + record.prompt.replace("\n", "\n> "),
        "",
    ]

    if record.setupInstructions:
        lines += ["## Setup", ""]
        lines += [f"{i}. {step}" for i, step in enumerate(record.setupInstructions, 1)]
        lines.append("")

    if record.apiEndpoints:
        lines += ["## API Endpoints", "", "| Method | Path | Description |", "|---|---|---|"]
        for ep in record.apiEndpoints:
            desc = ep.description.replace("|", "\\|").replace("\n", " ")
            lines.append(f"| {ep.method} | `{ep.path}` | {desc} |")
        lines.append("")

    if record.environmentVariables:
        lines += ["## Environment Variables", ""]
        lines += [f"- `{k}`: {v}" for k, v in record.environmentVariables.items()]
        lines.append("")

    deps = _deps_block("Runtime", record.dependencies) + _deps_block(
        "Development", record.devDependencies
    )
    if deps:
        lines += ["## Dependencies", ""] + deps

    files = [p for p, e in record.fileTree.items() if e.type == "file"]
    if files:
        lines += ["## Files", ""]
        lines += [f"- `{p}`" for p in files]
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"
