"""HTTP surface of the battle engine."""
