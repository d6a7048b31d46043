"""Scanning, snapshot and diff pipeline."""
