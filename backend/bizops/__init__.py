"""Bizops: chat-driven operations assistant for a small sales business."""

__version__ = "0.1.0"
