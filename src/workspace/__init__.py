"""Workspace (monorepo) merging."""
