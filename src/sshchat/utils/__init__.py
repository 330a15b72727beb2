"""Shared helpers for sshchat."""
