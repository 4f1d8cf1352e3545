"""
Restaurant discovery core.

Responsibilities:
- Narrow candidate restaurants to a travel radius around the user.
- Screen candidates against dietary restrictions and allergens.
- Score and rank survivors with configurable weights.
- Cache ranked result sets keyed by a query fingerprint.
"""
