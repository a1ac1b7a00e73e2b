"""Resolve video host embed pages into direct, validated stream URLs."""
