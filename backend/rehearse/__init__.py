"""RehearseAI backend: interview practice with recorded answers and tailored questions."""

__version__ = "0.1.0"
