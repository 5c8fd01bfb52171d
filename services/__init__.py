"""Service modules for the patient intake application."""

__all__ = [
    "intake_queue",
]
