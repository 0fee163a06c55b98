"""Playwright integration: live page adapter, in-page overlay and the host."""
