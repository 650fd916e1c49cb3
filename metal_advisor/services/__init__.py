"""Domain services: price cache, health blending and portfolio returns."""
