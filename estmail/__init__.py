"""estmail - Hyper Estraier search for flat-file mail stores."""

__version__ = "0.1.0"
