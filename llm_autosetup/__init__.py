"""Local LLM host auto-setup (Python-first, manifest-driven).

Core design goals:
- Sequential, fail-fast steps
- Declarative package lists and model catalog
- Hardware-aware decisions
- Centralized logging
"""

__version__ = "3.1.0"

__all__ = ["__version__"]
