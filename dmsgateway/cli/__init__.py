"""Command line tools: dms-status and dms-message."""
