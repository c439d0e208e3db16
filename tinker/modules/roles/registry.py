"""Static description of the TiDB cluster roles."""

import posixpath
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

BASE_DIR = "/var/lib/"
BACKUP_SUFFIX = ".bat"
PLACEHOLDER_FILE = "space_placeholder_file"

# Supervisor command lines with more tokens than this are the real service,
# fewer means the pod is idling in debug mode.
LIVENESS_THRESHOLD = 8

COMPONENT_LABEL = "app.kubernetes.io/component"


class ProbeTarget(Enum):
    """How the supervising process of a role is located inside its pod."""

    PID_ONE = "pid1"
    PROCESS_LIST = "process_list"


@dataclass(frozen=True)
class Role:
    """One service role of the cluster."""

    name: str
    display_name: str
    in_backup_scope: bool
    stop_rank: int
    start_rank: int
    check_rank: int
    probe_target: ProbeTarget = ProbeTarget.PROCESS_LIST
    base_dir: str = BASE_DIR

    @property
    def data_dir(self) -> str:
        """Data directory of the role inside its container."""
        return posixpath.join(self.base_dir, self.name)

    @property
    def container(self) -> str:
        return self.name

    @property
    def label_selector(self) -> str:
        return f"{COMPONENT_LABEL}={self.name}"

    def __str__(self) -> str:
        return self.name


class RoleRegistry:
    """Immutable set of roles with the orderings the lifecycle needs."""

    def __init__(self, roles: Iterable[Role]):
        self._roles: Tuple[Role, ...] = tuple(roles)
        names = [role.name for role in self._roles]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate role names: {names}")
        self._by_name: Dict[str, Role] = {role.name: role for role in self._roles}

    def __iter__(self):
        return iter(self._roles)

    def __len__(self) -> int:
        return len(self._roles)

    def get(self, name: str) -> Role:
        """Get a role by name, raising KeyError if unknown."""
        return self._by_name[name]

    def find(self, name: Optional[str]) -> Optional[Role]:
        if name is None:
            return None
        return self._by_name.get(name)

    def roles_in_stop_order(self) -> Tuple[Role, ...]:
        return tuple(sorted(self._roles, key=lambda role: role.stop_rank))

    def roles_in_start_order(self) -> Tuple[Role, ...]:
        return tuple(sorted(self._roles, key=lambda role: role.start_rank))

    def roles_in_check_order(self) -> Tuple[Role, ...]:
        return tuple(sorted(self._roles, key=lambda role: role.check_rank))

    def roles_in_backup_scope(self) -> Tuple[Role, ...]:
        """Roles with durable data, in check order."""
        return tuple(role for role in self.roles_in_check_order() if role.in_backup_scope)


TIDB = Role(
    name="tidb",
    display_name="TiDB",
    in_backup_scope=False,
    stop_rank=0,
    start_rank=2,
    check_rank=2,
)
PD = Role(
    name="pd",
    display_name="PD",
    in_backup_scope=True,
    stop_rank=2,
    start_rank=0,
    check_rank=1,
)
TIKV = Role(
    name="tikv",
    display_name="TiKV",
    in_backup_scope=True,
    stop_rank=1,
    start_rank=1,
    check_rank=0,
    probe_target=ProbeTarget.PID_ONE,
)


def default_registry() -> RoleRegistry:
    """Registry for a standard TiDB cluster deployed by tidb-operator."""
    return RoleRegistry([TIDB, PD, TIKV])
