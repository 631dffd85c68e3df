"""
nps - Nix Package Search.

Find a search term in the available nix packages and sort the results
by relevance: exact name matches, then names starting with the term,
then any other occurrence.

Modules:
- cli: Command-line interface entry point.
- operations: Refresh policy and the query pipeline.
- matcher: Exact / direct / indirect classification.
- renderer: Column layout and match highlighting.
- cache: On-disk package listing snapshot.
- source: nix-env / nix search adapters.
- config: Environment variable configuration.
"""

__version__ = "0.1.0"

from .cli import main

__all__ = ["main", "__version__"]
