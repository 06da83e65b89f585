"""Building blocks for parallel programs: loggers, binary buffers and views, and gather collectives."""

__version__ = "0.1.0"
__all__ = ["binary", "commpp", "logging"]