"""
The units package.
Parses, stores and resolves unit definitions.
"""
from .unitfile import UnitDefinition, parse_unit_text, render_unit_text, unit_key
from .store import UnitStore
from .resolver import ResolvedCommand, resolve

__all__ = ['UnitDefinition', 'parse_unit_text', 'render_unit_text', 'unit_key',
           'UnitStore', 'ResolvedCommand', 'resolve']
