"""Real-time text-state synchronization hub."""

__version__ = "1.0.0"
