"""
cda — constraint instruction compiler.

File: src/cda/__init__.py

Purpose
- Package root. Compiles a bundle of constraint markdown documents into
  deterministic JSON instruction packages for an executing agent.

What should be included in this file
- Version export and a minimal public API surface.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.4.0"

__all__ = ["__version__"]
