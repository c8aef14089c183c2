"""Scoring engines for the supported sports."""

from . import tennis, volleyball

ENGINES = {
    tennis.NAME: tennis,
    volleyball.NAME: volleyball,
}

__all__ = [
    "ENGINES",
    "tennis",
    "volleyball",
]
