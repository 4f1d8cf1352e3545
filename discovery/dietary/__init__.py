"""
Dietary compatibility and allergen safety.

Responsibilities:
- Normalise dietary and allergen tags for comparison.
- Score how well a restaurant supports a user's restrictions.
- Classify allergen risk as ok / caution / warning.
"""
