"""
PlayFlow API Server

FastAPI server for browsing, validating and recording workflows over HTTP.
Runs are executed one at a time by the PlayFlow CLI in a subprocess; their
output is captured so clients can poll status and a log tail.

Usage:
    python api_server.py
    uvicorn api_server:app --port 8080
"""

import asyncio
import logging
import mimetypes
import os
import sys
import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse
from pydantic import BaseModel

from persistence import OUTPUT_ROOT, SCREENSHOTS_DIR
from workflow_errors import ConfigError, WorkflowNotFoundError
from workflow_loader import list_workflows, load_workflow_definition
from workflow_validation import collect_errors

logger = logging.getLogger(__name__)

app = FastAPI(
    title="PlayFlow API",
    description="HTTP API for validating and recording browser workflows",
    version="1.0.0",
)

# --- Configuration ---

WORKING_DIR = os.environ.get("PLAYFLOW_WORKING_DIR", ".")
WORKFLOWS_DIR = Path(os.environ.get("PLAYFLOW_WORKFLOWS_DIR", "workflows"))
OUTPUT_DIR = Path(os.environ.get("PLAYFLOW_OUTPUT_DIR", OUTPUT_ROOT))
PYTHON_BIN = os.environ.get("PLAYFLOW_PYTHON", sys.executable)
CLI_SCRIPT = "playflow_cli.py"

# --- Run registry ---

runs: dict[str, dict] = {}
run_tasks: dict[str, asyncio.Task] = {}


# --- Request models ---


class RunRequest(BaseModel):
    workflow: str
    record: bool = True
    session: Optional[str] = None
    save_session: Optional[str] = None


# --- Helpers ---


def _load_definition(name: str) -> dict:
    if "/" in name or ".." in name:
        raise HTTPException(status_code=400, detail="Invalid workflow name")
    try:
        return load_workflow_definition(name, WORKFLOWS_DIR)
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConfigError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _active_run() -> Optional[dict]:
    for run in runs.values():
        if run["status"] == "running":
            return run
    return None


def _build_command(req: RunRequest) -> list[str]:
    cmd = [PYTHON_BIN, CLI_SCRIPT, "record" if req.record else "execute", req.workflow]
    if req.session:
        cmd.extend(["--session", req.session])
    if req.save_session:
        cmd.extend(["--save-session", req.save_session])
    return cmd


# --- Endpoints ---


@app.get("/health")
async def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


# --- Workflows ---


@app.get("/api/workflows")
async def get_workflows():
    """List workflows with their action counts."""
    result = []
    for name in list_workflows(WORKFLOWS_DIR):
        try:
            definition = load_workflow_definition(name, WORKFLOWS_DIR)
        except ConfigError:
            result.append({"name": name, "actions": None, "valid": False})
            continue
        actions = definition.get("actions")
        result.append({
            "name": name,
            "actions": len(actions) if isinstance(actions, list) else None,
            "valid": not collect_errors(definition),
        })
    return result


@app.get("/api/workflows/{name}")
async def get_workflow(name: str):
    """Get a workflow's raw actions and config."""
    return _load_definition(name)


@app.get("/api/workflows/{name}/validate")
async def validate_workflow_endpoint(name: str):
    """Validate a workflow; every issue is returned."""
    issues = collect_errors(_load_definition(name))
    return {
        "name": name,
        "valid": not issues,
        "errors": [asdict(issue) for issue in issues],
    }


# --- Runs ---


async def _run_cli(run_id: str, cmd: list[str]):
    """Background coroutine: runs the CLI and captures its output."""
    run = runs[run_id]
    proc = None
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=WORKING_DIR,
        )
        run["pid"] = proc.pid

        async for line in proc.stdout:
            text = line.decode("utf-8", errors="replace").rstrip()
            run["log_lines"].append(text)

        await proc.wait()
        run["returncode"] = proc.returncode
        run["status"] = "completed" if proc.returncode == 0 else "failed"
    except Exception as e:
        logger.error(f"Run {run_id} failed: {e}")
        run["log_lines"].append(f"Run failed: {e}")
        run["status"] = "failed"
        if proc is not None and proc.returncode is None:
            proc.kill()
    finally:
        # A cancelled task must not hold the one-run gate
        if run["status"] == "running":
            run["status"] = "failed"
        run["finished_at"] = datetime.now(timezone.utc).isoformat()


@app.post("/api/runs")
async def start_run(req: RunRequest):
    """Start a run in the background. Only one run may be active."""
    active = _active_run()
    if active is not None:
        raise HTTPException(status_code=409, detail=f"Run {active['run_id']} is still running")

    issues = collect_errors(_load_definition(req.workflow))
    if issues:
        raise HTTPException(status_code=422, detail=[asdict(issue) for issue in issues])

    run_id = str(uuid.uuid4())[:8]
    runs[run_id] = {
        "run_id": run_id,
        "workflow": req.workflow,
        "record": req.record,
        "status": "running",
        "started_at": datetime.now(timezone.utc).isoformat(),
        "finished_at": None,
        "pid": None,
        "returncode": None,
        "log_lines": [],
    }

    task = asyncio.create_task(_run_cli(run_id, _build_command(req)))
    run_tasks[run_id] = task
    task.add_done_callback(lambda _: run_tasks.pop(run_id, None))
    return {"run_id": run_id, "status": "running"}


@app.get("/api/runs")
async def list_runs():
    """List all runs."""
    return [
        {k: v for k, v in r.items() if k != "log_lines"}
        | {"log_count": len(r["log_lines"])}
        for r in runs.values()
    ]


@app.get("/api/runs/{run_id}")
async def get_run(run_id: str, tail: int = 50):
    """Get run status and log tail."""
    if run_id not in runs:
        raise HTTPException(status_code=404, detail="Run not found")
    r = runs[run_id]
    return {
        "run_id": r["run_id"],
        "workflow": r["workflow"],
        "status": r["status"],
        "started_at": r["started_at"],
        "finished_at": r["finished_at"],
        "returncode": r["returncode"],
        "log_count": len(r["log_lines"]),
        "log_tail": r["log_lines"][-tail:],
    }


# --- Run output ---

ARTIFACT_KINDS = {
    "video.mp4": "video",
    "video.webm": "video",
    "timecode.txt": "timeline",
    "markers.vtt": "cues",
    "chapters.txt": "chapters",
}
MEDIA_TYPES = {
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".vtt": "text/vtt",
    ".txt": "text/plain",
}


def _artifact_kind(path: Path) -> str:
    if path.is_dir():
        return "run" if path.parent == OUTPUT_DIR.resolve() else "directory"
    if path.parent.name == SCREENSHOTS_DIR:
        return "screenshot"
    return ARTIFACT_KINDS.get(path.name, "file")


def _describe(path: Path) -> dict:
    stat = path.stat()
    return {
        "name": path.name,
        "path": path.relative_to(OUTPUT_DIR.resolve()).as_posix(),
        "kind": _artifact_kind(path),
        "bytes": stat.st_size if path.is_file() else None,
        "modified": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
    }


def _resolve_output(path: str) -> Path:
    root = OUTPUT_DIR.resolve()
    target = (root / path).resolve()
    if not target.is_relative_to(root):
        raise HTTPException(status_code=403, detail="Path is outside the output directory")
    if not target.exists():
        raise HTTPException(status_code=404, detail=f"No such output: {path}")
    return target


@app.get("/api/files")
async def list_output_files(path: str = ""):
    """Browse run output; directories are listed before files."""
    target = _resolve_output(path)
    if target.is_file():
        return _describe(target)
    children = sorted(target.iterdir(), key=lambda p: (p.is_file(), p.name))
    return {"path": path or "/", "entries": [_describe(child) for child in children]}


@app.get("/api/files-download/{path:path}")
async def download_output_file(path: str):
    target = _resolve_output(path)
    if not target.is_file():
        raise HTTPException(status_code=404, detail=f"Not a file: {path}")
    media_type = MEDIA_TYPES.get(target.suffix.lower()) or mimetypes.guess_type(target.name)[0]
    return FileResponse(target, media_type=media_type or "application/octet-stream", filename=target.name)


if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PLAYFLOW_API_PORT", "8080"))
    uvicorn.run(app, host="0.0.0.0", port=port)
