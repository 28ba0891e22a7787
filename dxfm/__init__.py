"""Six-operator FM engines, algorithm layouts, envelope geometry, themes and cartridge file helpers."""

__version__ = "0.9.6"