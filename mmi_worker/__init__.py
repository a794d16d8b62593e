"""Background worker that turns recorded MMI practice answers into assessments."""

__version__ = "1.0.0"
