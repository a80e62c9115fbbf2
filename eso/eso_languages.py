"""
Registry of the available language engines, keyed by name.
"""
from typing import Dict, Type

from eso.eso_befunge import Befunge93Engine
from eso.eso_brainfuck import BrainfuckEngine
from eso.eso_chef import ChefEngine
from eso.eso_deadfish import DeadfishEngine
from eso.eso_engine import LanguageEngine

LANGUAGES: Dict[str, Type[LanguageEngine]] = {
    engine.name: engine
    for engine in (ChefEngine, Befunge93Engine, BrainfuckEngine, DeadfishEngine)
}

ALIASES = {"befunge": "befunge93", "bf": "brainfuck"}


def create_engine(name: str) -> LanguageEngine:
    """Instantiate a fresh engine for a language name (case-insensitive)."""
    key = name.lower()
    key = ALIASES.get(key, key)
    try:
        return LANGUAGES[key]()
    except KeyError:
        raise ValueError(f"Unknown language: {name!r} (available: {', '.join(sorted(LANGUAGES))})")
