"""Collaborations module - shared meme projects, their members and history."""

from src.modules.collaborations.router import router

__all__ = ["router"]
