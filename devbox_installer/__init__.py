"""Developer workstation bootstrapper.

Core design goals:
- Idempotent: a second run with everything installed touches nothing
- Probe first, install only what is missing
- Explicit dependencies between tools, installed in topological order
- Fail fast: the first failed install stops the run
- Centralized logging
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
