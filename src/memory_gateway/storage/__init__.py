"""
Reference memory stores
"""

from .buffer_memory import BufferMemory, InMemoryChatHistory

__all__ = ["BufferMemory", "InMemoryChatHistory"]
