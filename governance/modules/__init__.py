"""Governance module system"""

from governance.modules.base import GameModule, IntervalModule, TickContext
from governance.modules.module_manager import ModuleManager

__all__ = ["GameModule", "IntervalModule", "TickContext", "ModuleManager"]
