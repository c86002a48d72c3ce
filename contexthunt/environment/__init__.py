"""Browsing-context bindings: Playwright frames/windows and HTML snapshots."""
