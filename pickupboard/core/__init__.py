"""Core module for the pickupboard application."""

from .types import FirestoreDocument

__all__ = ["FirestoreDocument"]
