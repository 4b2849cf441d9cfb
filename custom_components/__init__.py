"""Custom Home Assistant integrations."""
