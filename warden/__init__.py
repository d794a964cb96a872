"""Warden: patrol, investigate and chase behavior for autonomous agents."""
