"""Storage layer shared by subathon services."""
