"""Route group exports."""

from . import convoys, health, monitor, offers

__all__ = ["convoys", "health", "monitor", "offers"]
