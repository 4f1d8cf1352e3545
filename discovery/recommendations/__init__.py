"""
Restaurant recommendation pipeline.

Responsibilities:
- Accept a discovery request (origin, radius, preferences, free text).
- Fetch candidates from a repository with bounding-box pushdown.
- Screen and rank candidates with configurable scoring weights.
- Serve repeated requests from a fingerprinted, time-boxed cache.
"""
