"""MCP stdio server exposing hackmud-sync operations as tools."""
