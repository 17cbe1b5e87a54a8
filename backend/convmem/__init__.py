"""Conversation memory: chunk, capture, index and recall coding conversations."""

__version__ = "0.1.0"
