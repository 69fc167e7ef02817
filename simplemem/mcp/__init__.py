"""MCP transport for simplemem: tool registration and server entry point."""
