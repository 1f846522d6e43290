"""ship-nodegui: package NodeGui applications for distribution.

Core design goals:
- Fixed stage order, strictly sequential
- Validate everything before touching the filesystem
- Stages talk to each other only through the variable environment
- Centralized logging
"""

__version__ = "0.1.0"

__all__ = []
