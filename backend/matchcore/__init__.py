"""Match state engine: tennis/volleyball scoring, undo history and brackets."""
