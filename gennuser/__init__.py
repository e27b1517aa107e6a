"""Connectivity generators, run drivers, model descriptions and simulation helpers for spiking network examples."""

__version__ = "0.1.0"

__all__ = [
    "classol",
    "generate_run",
    "izh_network",
    "models",
    "recording",
    "synapse_gen",
    "tools_cli",
]