"""Tests for the role registry."""

import pytest

from tinker.modules.roles import PD, TIDB, TIKV, ProbeTarget, RoleRegistry, default_registry


class TestDefaultRegistry:
    """Orderings of the standard TiDB roles."""

    def test_stop_order(self):
        assert default_registry().roles_in_stop_order() == (TIDB, TIKV, PD)

    def test_start_order(self):
        assert default_registry().roles_in_start_order() == (PD, TIKV, TIDB)

    def test_check_order(self):
        assert default_registry().roles_in_check_order() == (TIKV, PD, TIDB)

    def test_backup_scope_excludes_tidb(self):
        scope = default_registry().roles_in_backup_scope()
        assert scope == (TIKV, PD)
        assert TIDB not in scope

    def test_get_and_find(self):
        registry = default_registry()
        assert registry.get("pd") is PD
        assert registry.find("tikv") is TIKV
        assert registry.find("prometheus") is None
        assert registry.find(None) is None
        with pytest.raises(KeyError):
            registry.get("prometheus")

    def test_iteration(self):
        assert {role.name for role in default_registry()} == {"tidb", "pd", "tikv"}
        assert len(default_registry()) == 3


class TestRole:
    """Directory and selector conventions."""

    def test_data_dir(self):
        assert TIKV.data_dir == "/var/lib/tikv"
        assert PD.data_dir == "/var/lib/pd"

    def test_container_and_selector(self):
        assert TIKV.container == "tikv"
        assert TIKV.label_selector == "app.kubernetes.io/component=tikv"

    def test_probe_targets(self):
        assert TIKV.probe_target is ProbeTarget.PID_ONE
        assert PD.probe_target is ProbeTarget.PROCESS_LIST

    def test_roles_are_immutable(self):
        with pytest.raises(AttributeError):
            TIKV.name = "other"

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError):
            RoleRegistry([PD, PD])
