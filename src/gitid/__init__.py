"""gitid - git identity and npm registry switcher

Philosophy:
- Ruthless simplicity
- Brick architecture (self-contained modules)
- External tools are best-effort, never fatal

gitid keeps a short most-recently-used list of (name, email, registry)
profiles and applies the chosen one to the global git config and npm.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
