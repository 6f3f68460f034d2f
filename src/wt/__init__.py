"""Manage git repositories and their worktrees from a central registry."""
