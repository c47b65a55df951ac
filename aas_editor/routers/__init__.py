"""
FastAPI routers for the AAS environment editor.
"""

from aas_editor.routers import editor, export, sessions, templates, validation

__all__ = ["templates", "sessions", "editor", "validation", "export"]
