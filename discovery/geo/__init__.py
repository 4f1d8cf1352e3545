"""
Geographic proximity filtering.

Responsibilities:
- Build a bounding box around an origin for cheap pre-filtering.
- Compute exact Haversine distances for surviving candidates.
- Tolerate candidates with missing or malformed coordinates.
"""
