"""ReputationModule tests"""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

from governance.core.reputation import DecayReport
from governance.modules.base import TickContext
from governance.modules.module_manager import ModuleManager
from governance.modules.reputation.module import ReputationModule

NOW = datetime(2030, 6, 1, 12, 0, 0)


def _make_service_mock():
    service = MagicMock()
    service.rebuild_effects_cache.return_value = 0
    service.run_decay.return_value = DecayReport(examined=3, decayed=2, skipped=1, failed=0)
    return service


class TestReputationModule:
    def test_name_and_interval(self):
        module = ReputationModule(_make_service_mock(), interval_hours=24)
        assert module.name == "reputation"
        assert module.dependencies == []
        assert module.interval == timedelta(hours=24)

    def test_enable_rebuilds_cache(self):
        service = _make_service_mock()
        mm = ModuleManager()
        mm.register(ReputationModule(service))
        mm.enable("reputation")
        service.rebuild_effects_cache.assert_called_once()

    def test_disable_clears_cache(self):
        service = _make_service_mock()
        mm = ModuleManager()
        mm.register(ReputationModule(service))
        mm.enable("reputation")
        mm.disable("reputation")
        service.cache.clear.assert_called_once()

    def test_decay_runs_once_per_interval(self):
        service = _make_service_mock()
        module = ReputationModule(service, interval_hours=24)

        assert module.on_tick(TickContext(now=NOW, tick=1)) is True
        assert module.on_tick(TickContext(now=NOW + timedelta(hours=23), tick=2)) is False
        assert module.on_tick(TickContext(now=NOW + timedelta(hours=24), tick=3)) is True

        assert service.run_decay.call_count == 2
        service.run_decay.assert_called_with(now=NOW + timedelta(hours=24))
        assert module.last_report.decayed == 2
