"""
Serving — MCP stdio server and FastAPI application for semantic search.

The MCP server is the primary surface for coding assistants; the FastAPI
app exposes the same search over HTTP for scripts and containers.
"""
