"""One post per day: post lifecycle and feed visibility engine."""

__version__ = "1.0.0"
