"""
Scripts Module - Black Box Interface

Purpose: Render the shell programs run inside role containers
Interface: build_backup_script(), build_restore_script(), build_status_probe(),
           build_list_probe(), build_quiesce_command(), exec_argv()
Hidden: Quoting, exclusion patterns, script file layout

Pure functions. The orchestrator never concatenates shell text itself.
"""

from .builder import (
    EXCLUDE_PATTERN,
    backup_dir,
    build_backup_script,
    build_list_probe,
    build_quiesce_command,
    build_restore_script,
    build_status_probe,
    exec_argv,
    script_path,
    validate_version,
)

__all__ = [
    "EXCLUDE_PATTERN",
    "backup_dir",
    "build_backup_script",
    "build_list_probe",
    "build_quiesce_command",
    "build_restore_script",
    "build_status_probe",
    "exec_argv",
    "script_path",
    "validate_version",
]
