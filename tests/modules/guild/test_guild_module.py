"""GuildModule tests"""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

from governance.modules.base import TickContext
from governance.modules.guild.module import GuildModule
from governance.modules.module_manager import ModuleManager

NOW = datetime(2030, 6, 1, 12, 0, 0)


def _make_service_mock():
    service = MagicMock()
    service.load.return_value = 2
    service.process_periodic_updates.return_value = 1
    return service


class TestGuildModule:
    def test_name_and_interval(self):
        module = GuildModule(_make_service_mock(), interval_hours=1)
        assert module.name == "guild"
        assert module.interval == timedelta(hours=1)

    def test_enable_loads_registry(self):
        service = _make_service_mock()
        mm = ModuleManager()
        mm.register(GuildModule(service))
        assert mm.enable("guild") is True
        service.load.assert_called_once()

    def test_disable_clears_registry(self):
        service = _make_service_mock()
        mm = ModuleManager()
        mm.register(GuildModule(service))
        mm.enable("guild")
        mm.disable("guild")
        service.registry.clear.assert_called_once()

    def test_maintenance_on_due_tick(self):
        service = _make_service_mock()
        mm = ModuleManager()
        module = GuildModule(service, interval_hours=1)
        mm.register(module)
        mm.enable("guild")

        assert mm.process_tick(TickContext(now=NOW, tick=1)) == ["guild"]
        assert mm.process_tick(TickContext(now=NOW + timedelta(minutes=10), tick=2)) == []

        service.process_periodic_updates.assert_called_once_with(now=NOW)
        assert module.last_marked_inactive == 1
