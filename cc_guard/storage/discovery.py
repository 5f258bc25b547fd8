"""
Log source discovery.

Claude Code writes one JSONL file per session under
~/.claude/projects/{encoded-project-path}/{session-id}.jsonl.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import structlog


logger = structlog.get_logger()

LOG_SUFFIXES = (".jsonl", ".log")


@dataclass(frozen=True)
class LogFile:
    """A session log file found under the logs directory."""
    path: Path
    project_dir: str
    session_id: str


def default_logs_dir() -> Path:
    return Path.home() / ".claude" / "projects"


def resolve_logs_dir(custom_log_dir: Optional[Union[str, Path]] = None) -> Path:
    if custom_log_dir is None:
        return default_logs_dir()
    return Path(custom_log_dir).expanduser()


def logs_directory_exists(custom_log_dir: Optional[Union[str, Path]] = None) -> bool:
    return resolve_logs_dir(custom_log_dir).is_dir()


def is_log_file(path: Union[str, Path]) -> bool:
    return Path(path).suffix in LOG_SUFFIXES


def discover_log_files(custom_log_dir: Optional[Union[str, Path]] = None) -> List[LogFile]:
    """Discover all session log files one level below the logs directory.

    Unreadable project directories are skipped.

    Args:
        custom_log_dir: Logs directory override

    Returns:
        Log files sorted by path (empty if the directory doesn't exist)
    """
    base_dir = resolve_logs_dir(custom_log_dir)
    if not base_dir.is_dir():
        return []

    log_files: List[LogFile] = []
    try:
        project_dirs = sorted(base_dir.iterdir())
    except OSError as e:
        logger.debug("logs_directory_unreadable", path=str(base_dir), error=str(e))
        return []

    for project_dir in project_dirs:
        try:
            if not project_dir.is_dir():
                continue
            for path in sorted(project_dir.iterdir()):
                if path.is_file() and is_log_file(path):
                    log_files.append(LogFile(
                        path=path,
                        project_dir=project_dir.name,
                        session_id=path.stem,
                    ))
        except OSError as e:
            logger.debug("project_directory_skipped", path=str(project_dir), error=str(e))

    return log_files
