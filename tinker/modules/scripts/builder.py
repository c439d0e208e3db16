"""
Shell programs run inside role containers.

The only primitive the exec channel offers is "run this program in this
container", so every remote action is rendered here as literal shell text.
Backup and restore programs are written to a script file under the data
directory with a quoted here-document (nothing is expanded while writing)
and then run with ``sh``. Destructive steps always start from a cleanup so
re-running a program is safe.
"""

import re
from typing import List

from ...errors import InvalidVersionError
from ..roles import BACKUP_SUFFIX, PLACEHOLDER_FILE, ProbeTarget, Role

VERSION_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

HEREDOC_DELIMITER = "TINKER_EOF"

# Entries of a data directory that are never part of a backup set:
# other backup sets, the disk-space placeholder and our own scripts.
EXCLUDE_PATTERN = (
    re.escape(BACKUP_SUFFIX) + "$"
    + "|^" + re.escape(PLACEHOLDER_FILE) + "$"
    + r"|^(back|restore)_.*\.sh$"
)

QUIESCE_COMMAND = "kill 1"


def validate_version(version: str) -> str:
    """
    Check that a backup label is safe to embed in shell text and paths.

    Raises:
        InvalidVersionError: If the label is empty or has unsupported characters
    """
    if not version or not VERSION_PATTERN.match(version):
        raise InvalidVersionError(
            f"Invalid backup version {version!r}: use letters, digits, '.', '_' or '-'"
        )
    return version


def backup_dir(role: Role, version: str) -> str:
    """Directory holding backup set ``version`` of ``role``."""
    return f"{role.data_dir}/{validate_version(version)}{BACKUP_SUFFIX}"


def script_path(role: Role, action: str, version: str) -> str:
    return f"{role.data_dir}/{action}_{validate_version(version)}.sh"


def _write_and_run(path: str, steps: List[str]) -> str:
    body = "\n".join(["set -e"] + steps)
    return f"cat > {path} <<'{HEREDOC_DELIMITER}'\n{body}\n{HEREDOC_DELIMITER}\nsh {path}"


def _for_each_entry(command: str) -> str:
    return f'while IFS= read -r entry; do {command} || exit 1; done'


def build_backup_script(role: Role, version: str) -> str:
    """
    Render the program that snapshots a role's data directory.

    Steps:
    1. Remove any previous copy of the same backup set
    2. Recreate the backup directory
    3. Copy every entry except other backup sets, the placeholder file and
       generated scripts into it, verbosely
    """
    target = backup_dir(role, version)
    steps = [
        f"rm -rf {target}",
        f"mkdir -p {target}",
        f"cd {role.data_dir}",
        f"ls -A | grep -vE '{EXCLUDE_PATTERN}' | "
        + _for_each_entry(f'/bin/cp -rfv "$entry" {target}'),
    ]
    return _write_and_run(script_path(role, "back", version), steps)


def build_restore_script(role: Role, version: str) -> str:
    """
    Render the program that replaces a role's live data with a backup set.

    Destructive: only run it once the role is confirmed quiesced. The
    program refuses to touch the live directory when the backup set is
    missing.
    """
    source = backup_dir(role, version)
    steps = [
        f"test -d {source}",
        f"cd {role.data_dir}",
        f"ls -A | grep -vE '{EXCLUDE_PATTERN}' | "
        + _for_each_entry('rm -rfv "$entry"'),
        f"cd {source}",
        "ls -A | " + _for_each_entry(f'/bin/cp -rfv "$entry" {role.data_dir}'),
    ]
    return _write_and_run(script_path(role, "restore", version), steps)


def build_status_probe(role: Role) -> str:
    """
    Render the liveness probe of a role.

    The second output line is the token count of the supervising process's
    command line.
    """
    if role.probe_target is ProbeTarget.PID_ONE:
        return "ps -Cp 1|awk '{print NF}'"
    return "ps|awk '{print NF}'"


def build_list_probe(role: Role) -> str:
    """Render the listing of backup sets, one directory name per line."""
    pattern = re.escape(BACKUP_SUFFIX) + "$"
    return f"ls -A {role.data_dir} | grep -E '{pattern}' || true"


def build_quiesce_command(role: Role) -> str:
    """Render the command that stops the supervising process of a role."""
    return QUIESCE_COMMAND


def exec_argv(script: str) -> List[str]:
    """Wrap shell text into the argv handed to the exec channel."""
    return ["sh", "-c", script]
