"""
worldstate - market caps in, one deterministic image per change out.

Subpackages:
- worldstate.core: errors, Result, logging, settings, hashing, persistence primitives
- worldstate.domain: pure transforms (rounding, mapping, prompt, archive schema)
- worldstate.sources: market-data aggregation
- worldstate.providers: image providers
- worldstate.storage: object store, archive storage, archive index, state
- worldstate.ops: the minute pipeline, revenue and backfill
- worldstate.cli: typer entry point
"""

__version__ = "0.3.0"
